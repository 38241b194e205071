"""Local display names for tenants, keyed by tenant id.

The backend does not always echo the name an operator typed, so the console
keeps its own copy. Last write wins; a missing or corrupt file reads as empty.
"""
from __future__ import annotations
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class TenantNameStore:
    """JSON file mapping tenant id -> display name."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable tenant name store %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): str(value) for key, value in data.items()}

    def get(self, tenant_id: str) -> Optional[str]:
        return self.all().get(tenant_id)

    def save(self, tenant_id: str, name: str) -> None:
        name = (name or "").strip()
        if not tenant_id or not name:
            return
        names = self.all()
        names[tenant_id] = name
        self._write(names)

    def remove(self, tenant_id: str) -> None:
        names = self.all()
        if names.pop(tenant_id, None) is not None:
            self._write(names)

    def _write(self, names: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".tenant-names-", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(names, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
