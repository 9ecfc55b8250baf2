"""Record Builder and Batch Assembler."""

from .processor import BatchAssembler, assemble, build

__all__ = ['BatchAssembler', 'assemble', 'build']
