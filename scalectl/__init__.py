"""scalectl - guided Storage Scale cluster deployment."""

__version__ = "0.1.0"
