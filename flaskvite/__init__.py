"""flaskvite -- Flask + Vite project generator with systemd management."""

__version__ = "0.1.0"
