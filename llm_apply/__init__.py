"""llm-apply: turn file blocks in LLM responses into files on disk."""

from llm_apply.orchestrator import extract_all, extract_all_sync
from llm_apply.paths import normalize
from llm_apply.types import BlockSource, ExtractionResult, FileBlock
from llm_apply.writer import FileWriter, write_files

__version__ = "0.1.0"

__all__ = [
    "BlockSource",
    "ExtractionResult",
    "FileBlock",
    "FileWriter",
    "extract_all",
    "extract_all_sync",
    "normalize",
    "write_files",
]
