"""Text-completion service clients."""
