"""
Image materialization and response assembly.
"""
from .assembler import assemble, passthrough
from .fan_out import FanOutCoordinator, encode_image

__all__ = ["FanOutCoordinator", "assemble", "encode_image", "passthrough"]
