"""
Document source for shards: loading and partitioning JSON datasets
"""
import json
import logging
from pathlib import Path
from typing import Any, List, Sequence, Tuple
from pydantic import ValidationError
from shard_search.core.models import Document


logger = logging.getLogger(__name__)


class DocumentLoadError(Exception):
    """Raised when a shard's document collection cannot be loaded"""


def _read_records(file_path: str) -> List[Any]:
    path = Path(file_path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentLoadError(f"Cannot read data file {file_path}: {e}") from e

    try:
        records = json.loads(content)
    except json.JSONDecodeError as e:
        raise DocumentLoadError(f"Data file {file_path} is not valid JSON: {e}") from e

    if not isinstance(records, list):
        raise DocumentLoadError(f"Data file {file_path} must contain a JSON array of documents")

    return records


def load_documents(file_path: str) -> Tuple[Document, ...]:
    """
    Load a shard's documents from a JSON array file

    Args:
        file_path: Path to a JSON file holding [{title, abstract, label}, ...]

    Returns:
        Documents in file order

    Raises:
        DocumentLoadError: If the file is missing, unparseable or holds an
            invalid record. Nothing is returned on partial success.
    """
    records = _read_records(file_path)

    documents = []
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            raise DocumentLoadError(f"Record {position} in {file_path} is not an object")
        try:
            documents.append(Document(**record))
        except ValidationError as e:
            raise DocumentLoadError(f"Record {position} in {file_path} is invalid: {e}") from e

    logger.info(f"Loaded {len(documents)} documents from {file_path}")
    return tuple(documents)


def partition(records: Sequence[Any], shard_count: int) -> List[List[Any]]:
    """
    Split records into contiguous, order-preserving chunks

    Args:
        records: Records to split
        shard_count: Number of chunks

    Returns:
        shard_count lists; earlier chunks take the remainder
    """
    if shard_count < 1:
        raise ValueError("shard_count must be at least 1")

    base, extra = divmod(len(records), shard_count)

    chunks = []
    start = 0
    for index in range(shard_count):
        end = start + base + (1 if index < extra else 0)
        chunks.append(list(records[start:end]))
        start = end
    return chunks


def split_dataset(input_file: str, shard_count: int, output_dir: str, prefix: str = "shard") -> List[str]:
    """
    Partition a dataset file into one data file per shard

    Args:
        input_file: JSON array of documents
        shard_count: Number of shard files to write
        output_dir: Directory for the shard files
        prefix: File name prefix

    Returns:
        Paths of the written files, in shard order
    """
    records = _read_records(input_file)

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    written = []
    for index, chunk in enumerate(partition(records, shard_count), 1):
        target = out / f"{prefix}_{index}.json"
        with open(target, 'w', encoding='utf-8') as f:
            json.dump(chunk, f, ensure_ascii=False, indent=2)
        logger.info(f"Wrote {len(chunk)} documents to {target}")
        written.append(str(target))

    return written
