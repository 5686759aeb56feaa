"""
SnapshotStore - Best-effort JSON persistence for the knowledge graph

The graph store hands over a full document after every mutation:

    {"papers": [...], "authors": [...], "relations": [...]}

Writes go to a temporary file that is atomically renamed over the target,
so a crash mid-write leaves the previous snapshot intact.

Loading prefers the data snapshot and falls back to a read-only seed file.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class SnapshotStore:
    """File-backed snapshot of the knowledge graph document."""

    def __init__(self, data_path: str, seed_path: Optional[str] = None):
        self.data_path = Path(data_path)
        self.seed_path = Path(seed_path) if seed_path else None

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Load the last snapshot, or the seed document on first run.

        Returns None if neither exists. A corrupt snapshot is logged and
        treated as missing so the process can still start.
        """
        for path in (self.data_path, self.seed_path):
            if path is None or not path.exists():
                continue
            try:
                with open(path, encoding='utf-8') as f:
                    document = json.load(f)
                logger.info(f"📂 Loaded graph snapshot from {path}")
                return document
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"❌ Failed to read snapshot {path}: {e}")
        return None

    def save(self, document: Dict[str, Any]) -> None:
        """Atomically write the snapshot document."""
        self.data_path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix='.kg-', suffix='.json', dir=str(self.data_path.parent)
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_name, self.data_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
