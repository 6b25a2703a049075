"""Building blocks for a pluggable RPC: codecs, error model, buffers, buffered async I/O, asyncio runtime helpers and graceful restart."""

__version__ = "0.1.1"

__all__ = ["buffer", "bufio", "codec", "config", "error", "graceful", "runtime"]