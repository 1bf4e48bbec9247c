"""
Base catalog readers

Every catalog source implements the same contract: ``list_products()``
returns a list of plain records, each with a string ``id``.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from benderscore.core.config import settings
from benderscore.core.exceptions import DataSourceError
from benderscore.core.logging import log


@runtime_checkable
class CatalogReader(Protocol):
    """Source of immutable base product records"""

    def list_products(self) -> List[Dict[str, Any]]:
        ...


def _valid_records(records: Iterable[Any], source: str) -> List[Dict[str, Any]]:
    valid: List[Dict[str, Any]] = []
    seen = set()
    for record in records:
        if not isinstance(record, dict) or not isinstance(record.get("id"), str) or not record["id"].strip():
            log.warning("Skipping catalog record without a string id", source=source)
            continue
        if record["id"] in seen:
            log.warning("Skipping duplicate catalog id", source=source, product_id=record["id"])
            continue
        seen.add(record["id"])
        valid.append(dict(record))
    return valid


class StaticCatalogReader:
    """Catalog backed by an in-memory list of records"""

    def __init__(self, records: Iterable[Dict[str, Any]]):
        self._records = _valid_records(records, source="static")

    def list_products(self) -> List[Dict[str, Any]]:
        return [dict(record) for record in self._records]


class JsonCatalogReader:
    """
    Catalog loaded from a JSON file holding either a list of records or an
    object with a ``products`` list. The file is read once and cached;
    ``reload()`` re-reads it.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or settings.catalog_path)
        self._records: Optional[List[Dict[str, Any]]] = None

    def list_products(self) -> List[Dict[str, Any]]:
        if self._records is None:
            self._records = self._load()
        return [dict(record) for record in self._records]

    def reload(self) -> int:
        self._records = self._load()
        return len(self._records)

    def _load(self) -> List[Dict[str, Any]]:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise DataSourceError(f"Catalog file not found: {self.path}")
        except json.JSONDecodeError as e:
            raise DataSourceError(f"Catalog file is not valid JSON: {self.path}", error=str(e))

        if isinstance(payload, dict):
            payload = payload.get("products", [])
        if not isinstance(payload, list):
            raise DataSourceError(f"Catalog file must hold a list of products: {self.path}")

        records = _valid_records(payload, source=str(self.path))
        log.info("Loaded product catalog", path=str(self.path), products=len(records))
        return records
