"""
Message encode and decode pipelines.
"""

from pgpfile.pipeline.decode import DecodePipeline
from pgpfile.pipeline.encode import EncodePipeline

__all__ = [
    "DecodePipeline",
    "EncodePipeline",
]
