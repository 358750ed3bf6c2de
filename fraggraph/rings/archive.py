"""
Ring-closures archive.

Durable, append-only record of the chains whose closability has been
evaluated. The index file holds one line per chain:

    <chain_id> <record_id> T|F

with record ids 0, 1, 2, ... in file order. Closable chains may have
their ring-closing conformations stored as '<record_id>.json.gz' in the
blob folder.

Several processes may share one archive: appends hold an exclusive
advisory lock on the index file, readers only see complete lines.
Threads sharing one instance are serialized by an in-process lock.
"""

from __future__ import annotations
import fcntl
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from fraggraph.exceptions import ArchiveIOError, ConfigurationError, DuplicateRecordError
from fraggraph.rings.chains import ClosableChain
from fraggraph.rings.path import PathSubGraph
from fraggraph.storage.json_storage import JSONStorage


logger = logging.getLogger(__name__)


@dataclass
class RingClosingConformations:
    """Ring-closing conformations of one chain (opaque dihedral arrays)."""
    chain_id: str = ""
    conformations: List[np.ndarray] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.conformations)

    def to_dict(self) -> dict:
        return {"chain_id": self.chain_id, "conformations": list(self.conformations)}

    @classmethod
    def from_dict(cls, data: dict) -> "RingClosingConformations":
        return cls(
            chain_id=data.get("chain_id", ""),
            conformations=[np.asarray(c) for c in data.get("conformations", [])],
        )


class RingClosuresArchive:
    """
    Chain id -> closability verdict store backed by an index file.

    Example:
        archive = RingClosuresArchive("rcc/index.txt", "rcc/blobs")
        key = archive.contains_chain(path)
        if not key:
            archive.store_entry(path.chain_id, closable=True, conformations=rcc)
        archive.closability(path.chain_id)   # True
    """

    def __init__(
        self,
        index_file: Union[str, Path],
        blob_folder: Optional[Union[str, Path]] = None,
        serialize_blobs: bool = True,
        max_lock_attempts: int = 50,
        lock_retry_delay: float = 0.1,
    ):
        if max_lock_attempts < 1:
            raise ConfigurationError("max_lock_attempts must be at least 1")
        self.index_file = Path(index_file)
        self.blob_folder = Path(blob_folder) if blob_folder is not None else self.index_file.parent
        self.serialize_blobs = serialize_blobs
        self.max_lock_attempts = max_lock_attempts
        self.lock_retry_delay = lock_retry_delay

        self._records: Dict[str, Tuple[int, bool]] = {}
        self._chains_per_tp: Dict[int, List[ClosableChain]] = {}
        self._next_id = 0
        self._offset = 0  # Bytes of the index already parsed
        self._lock = threading.Lock()

        if self.index_file.exists():
            with open(self.index_file, 'rb') as f:
                self._read_new_lines(f)

    # ===== Index parsing =====

    def _read_new_lines(self, f) -> None:
        """Parse complete lines appended to the index since the last read."""
        f.seek(self._offset)
        data = f.read()
        end = data.rfind(b'\n') + 1  # Ignore a trailing partial line
        for raw in data[:end].splitlines():
            line = raw.decode('utf-8').strip()
            if not line:
                continue
            parts = line.split()
            if len(parts) != 3 or parts[2] not in ('T', 'F'):
                raise ArchiveIOError(f"Malformed line in {self.index_file}: '{line}'")
            chain_id, record_str, verdict = parts
            try:
                record_id = int(record_str)
            except ValueError:
                raise ArchiveIOError(f"Malformed record id in {self.index_file}: '{line}'")
            if record_id != self._next_id:
                raise ArchiveIOError(
                    f"Expecting record id {self._next_id} in {self.index_file}, found {record_id}"
                )
            if chain_id in self._records:
                raise DuplicateRecordError(chain_id, self._records[chain_id][0],
                                           f"Duplicate chain '{chain_id}' in {self.index_file}")
            self._add_record(chain_id, record_id, verdict == 'T')
        self._offset += end

    def _add_record(self, chain_id: str, record_id: int, closable: bool) -> None:
        self._records[chain_id] = (record_id, closable)
        if closable:
            chain = self._parse_chain(chain_id, record_id)
            self._chains_per_tp.setdefault(chain.turning_point_bb_id, []).append(chain)
        self._next_id = record_id + 1

    def _parse_chain(self, chain_id: str, record_id: Optional[int] = None) -> ClosableChain:
        try:
            return ClosableChain.from_chain_id(chain_id, closable=True, conformations_ref=record_id)
        except ConfigurationError as e:
            raise ArchiveIOError(f"Unparsable closable chain '{chain_id}': {e}") from e

    def refresh(self) -> None:
        """Pick up records appended by other processes."""
        with self._lock:
            if self.index_file.exists():
                with open(self.index_file, 'rb') as f:
                    self._read_new_lines(f)

    # ===== Writing =====

    def _acquire_lock(self, f) -> None:
        for attempt in range(1, self.max_lock_attempts + 1):
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                logger.warning(
                    f"Attempt {attempt} to lock '{self.index_file}' failed"
                )
                time.sleep(self.lock_retry_delay)
        raise ArchiveIOError(
            f"Could not lock '{self.index_file}' after {self.max_lock_attempts} attempts"
        )

    def store_entry(
        self,
        chain_id: str,
        closable: bool,
        conformations: Optional[RingClosingConformations] = None,
    ) -> int:
        """
        Append the verdict for `chain_id`.

        Returns:
            Record id given to the entry

        Raises:
            DuplicateRecordError: if `chain_id` is already archived
            ArchiveIOError: if the index cannot be locked or written
        """
        if not chain_id or any(c.isspace() for c in chain_id):
            raise ArchiveIOError(f"Invalid chain id '{chain_id}'")
        if closable:
            self._parse_chain(chain_id)
        with self._lock:
            self.index_file.parent.mkdir(parents=True, exist_ok=True)
            try:
                f = open(self.index_file, 'a+b')
            except OSError as e:
                raise ArchiveIOError(f"Cannot open '{self.index_file}': {e}") from e
            with f:
                self._acquire_lock(f)
                try:
                    return self._append(f, chain_id, closable, conformations)
                except OSError as e:
                    raise ArchiveIOError(f"Cannot write '{self.index_file}': {e}") from e
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def _append(self, f, chain_id: str, closable: bool,
                conformations: Optional[RingClosingConformations]) -> int:
        """Append one record; `f` is open and exclusively locked."""
        self._read_new_lines(f)
        if chain_id in self._records:
            raise DuplicateRecordError(chain_id, self._records[chain_id][0])

        # Under the lock a trailing partial line was left by a crashed writer
        size = f.seek(0, os.SEEK_END)
        if size > self._offset:
            logger.warning(
                f"Dropping {size - self._offset} bytes of incomplete record in '{self.index_file}'"
            )
            f.truncate(self._offset)

        record_id = self._next_id
        if closable and self.serialize_blobs:
            rcc = conformations if conformations is not None else RingClosingConformations(chain_id=chain_id)
            JSONStorage(self.blob_folder).save(rcc.to_dict(), str(record_id), compress=True)
            logger.debug(f"Stored conformations of record {record_id} in {self.blob_folder}")

        line = f"{chain_id} {record_id} {'T' if closable else 'F'}\n".encode('utf-8')
        f.seek(0, os.SEEK_END)
        f.write(line)
        f.flush()
        os.fsync(f.fileno())
        self._offset = f.tell()
        self._add_record(chain_id, record_id, closable)
        return record_id

    # ===== Lookups =====

    def contains_chain(self, path: PathSubGraph) -> str:
        """First archived identifier among the alternatives of `path`, or ''."""
        for chain_id in path.all_alternative_chain_ids:
            if chain_id in self._records:
                return chain_id
        return ""

    def closability(self, chain_id: str) -> Optional[bool]:
        """Archived verdict, or None when the chain was never evaluated."""
        record = self._records.get(chain_id)
        return record[1] if record is not None else None

    def record_id(self, chain_id: str) -> Optional[int]:
        record = self._records.get(chain_id)
        return record[0] if record is not None else None

    def conformations_of(self, chain_id: str) -> Optional[RingClosingConformations]:
        """
        Ring-closing conformations of an archived chain.

        Returns None for unknown chains and an empty set for chains
        archived as not closable.
        """
        record = self._records.get(chain_id)
        if record is None:
            return None
        record_id, closable = record
        if not closable:
            return RingClosingConformations(chain_id=chain_id)
        return self.conformations_from_archive(record_id)

    def conformations_from_archive(self, record_id: int) -> RingClosingConformations:
        storage = JSONStorage(self.blob_folder)
        try:
            return RingClosingConformations.from_dict(storage.load(str(record_id)))
        except (OSError, ValueError) as e:
            raise ArchiveIOError(f"Cannot read conformations of record {record_id}: {e}") from e

    def closable_chains_for_turning_point(self, bb_id: int) -> List[ClosableChain]:
        """Closable chains turning at the building block `bb_id`."""
        return list(self._chains_per_tp.get(bb_id, ()))

    def __contains__(self, chain_id: str) -> bool:
        return chain_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"RingClosuresArchive('{self.index_file}', records={len(self._records)})"
