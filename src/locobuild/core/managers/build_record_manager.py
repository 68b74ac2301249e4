# src/locobuild/core/managers/build_record_manager.py
import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import TypeAdapter, ValidationError

from locobuild.exceptions import PersistenceError
from locobuild.model import RepositoryIdentity

logger = logging.getLogger(__name__)

DEFAULT_RECORD_FILENAME = ".locobuild-build-record.json"


class BuildRecordManager:
    """
    Reads and writes the build record of a target directory: a JSON object
    mapping ``{repo}#{branch}`` to the last commit built into that target.

    Writes are read-modify-write merges, so entries for other repo/branch
    pairs are never touched. There is no locking; one pipeline per target.
    """

    def __init__(self, filename: str = DEFAULT_RECORD_FILENAME):
        self.filename = filename
        self._record_adapter = TypeAdapter(Dict[str, str])

    def record_path(self, target: Union[str, Path]) -> Path:
        return Path(target) / self.filename

    def read(self, target: Union[str, Path]) -> Dict[str, str]:
        """Loads the record in ``target``. A missing file is an empty record."""
        path = self.record_path(target)
        if not path.exists():
            return {}
        try:
            return self._record_adapter.validate_json(path.read_bytes())
        except (OSError, ValidationError) as e:
            raise PersistenceError(f"Malformed or unreadable build record {path}: {e}") from e

    def write(self, target: Union[str, Path], identity: RepositoryIdentity) -> Dict[str, str]:
        """Records ``identity``'s latest commit in the target's build record."""
        if not identity.repo_name:
            raise PersistenceError(f"Cannot record a build of {identity.path}: repository name unknown")
        record = self.read(target)
        record[identity.record_key] = identity.commit.hash
        self._save(self.record_path(target), record)
        logger.info("Build record %s: %s = %s", self.record_path(target), identity.record_key, identity.commit.hash)
        return record

    def read_for(self, identity: RepositoryIdentity, target: Union[str, Path]) -> Optional[str]:
        """The commit of ``identity``'s repo/branch last built into ``target``, if any."""
        return self.read(target).get(identity.record_key)

    def _save(self, path: Path, record: Dict[str, str]) -> None:
        """Atomically replaces the record file."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_suffix(".tmp")
            temp_path.write_text(json.dumps(record, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(temp_path, path)
        except OSError as e:
            raise PersistenceError(f"Failed to write build record {path}: {e}") from e
