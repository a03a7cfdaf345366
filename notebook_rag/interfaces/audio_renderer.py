"""Abstract base class for audio renderers.

A renderer turns a speaker-tagged script into a playable asset and returns
a reference (URL or path) to it.  Synthesis quality and format are the
renderer's business; the audio-overview orchestrator only stores the
reference and its expiry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: PlaceholderAudioRenderer (notebook_rag/providers/audio/)
class IAudioRenderer(ABC):
    """Contract for script-to-audio renderers."""

    @abstractmethod
    async def render(self, script: str) -> str:
        """Render *script* and return a reference to the produced asset.

        Raises
        ------
        notebook_rag.utils.errors.ProviderError
            If rendering fails.
        """

    @abstractmethod
    async def delete(self, asset_url: str) -> None:
        """Remove a previously rendered asset.  Missing assets are ignored."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this renderer."""
