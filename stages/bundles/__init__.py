from .interpolate_filename import interpolate_filename

__all__ = ["interpolate_filename"]
