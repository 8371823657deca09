"""Command-line entry points: ``lexsync`` and ``lexsync-merge``."""
