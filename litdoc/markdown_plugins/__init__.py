"""markdown-it-py plugins used by the renderer."""
from .literate_fence import literate_fence_plugin

__all__ = ["literate_fence_plugin"]
