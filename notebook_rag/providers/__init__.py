"""Concrete adapters for every external collaborator."""
