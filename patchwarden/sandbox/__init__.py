"""Process execution primitives."""
