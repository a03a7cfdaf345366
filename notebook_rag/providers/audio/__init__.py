"""Audio renderer adapters."""

from notebook_rag.providers.audio.placeholder_renderer import PlaceholderAudioRenderer

__all__ = ["PlaceholderAudioRenderer"]
