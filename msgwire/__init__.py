"""MessagePack append-style encoders, a buffered writer and slice decoders."""

__version__ = "0.1.0"
__all__ = ["decode", "encode", "size", "types", "writer"]