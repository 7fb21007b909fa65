"""threadvote: posts, threaded comments, voting and karma."""

__version__ = "0.1.0"
