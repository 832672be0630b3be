"""lazyssh: an SSH host registry and picker backed by ~/.ssh/config."""

__version__ = "0.1.0"
