"""Application services: ingestion, chat, audio overviews and notebook management."""
