"""
Admin overlay store and overlay merge

The overlay is a map of product id -> partial field patch, persisted as one
JSON file and layered over the immutable base catalog. Published version
fields from the version store sit on top of both.
"""

import json
import os
import tempfile
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from benderscore.core.exceptions import DataSourceError
from benderscore.core.logging import log
from benderscore.services.catalog import CatalogReader
from benderscore.utils.normalization import is_blank, split_list

# Fields the admin UI writes as comma-separated strings
LIST_FIELDS = ("materials", "dieShapes", "die_shapes", "highlights", "upgradeFlags", "upgrade_flags")

CITATION_SOURCE_TYPES = ("web-page", "pdf", "manual", "email", "other")


class OverlayStore:
    """
    In-process overlay state with explicit persistence.

    Nothing is re-read implicitly: call ``reload()`` to pick up changes made
    to the file by another process. Without a path the store is memory-only.
    """

    def __init__(self, path: Optional[Path] = None, patches: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        self._patches: Dict[str, Dict[str, Any]] = {}
        if patches is not None:
            self._patches = {key: self._clean(value) for key, value in patches.items()}
        elif self.path is not None:
            self.reload()

    def get(self, product_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            patch = self._patches.get(product_id)
            return deepcopy(patch) if patch is not None else None

    def all(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return deepcopy(self._patches)

    def update(self, product_id: str, patch: Mapping[str, Any]) -> Dict[str, Any]:
        """Shallow-merge ``patch`` into the product's overlay and persist it"""
        with self._lock:
            merged = deepcopy(self._patches.get(product_id, {}))
            merged.update(self._clean(patch))
            patches = dict(self._patches)
            patches[product_id] = merged
            self._commit(patches)
            log.info("Updated product overlay", product_id=product_id, fields=sorted(patch.keys()))
            return deepcopy(merged)

    def clear(self, product_id: str) -> bool:
        with self._lock:
            if product_id not in self._patches:
                return False
            patches = {key: value for key, value in self._patches.items() if key != product_id}
            self._commit(patches)
            log.info("Cleared product overlay", product_id=product_id)
            return True

    def reload(self) -> int:
        """Re-read the overlay file, replacing in-memory state"""
        with self._lock:
            if self.path is None or not self.path.exists():
                self._patches = {}
                return 0
            try:
                payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            except json.JSONDecodeError as e:
                raise DataSourceError(f"Overlay file is not valid JSON: {self.path}", error=str(e))
            if not isinstance(payload, dict):
                raise DataSourceError(f"Overlay file must hold an object keyed by product id: {self.path}")

            self._patches = {
                str(key): self._clean(value) for key, value in payload.items() if isinstance(value, dict)
            }
            log.info("Loaded product overlay", path=str(self.path), products=len(self._patches))
            return len(self._patches)

    def _commit(self, patches: Dict[str, Dict[str, Any]]) -> None:
        """Persist ``patches`` and only then make them the live overlay"""
        self._write(patches)
        self._patches = patches

    def _write(self, patches: Dict[str, Dict[str, Any]]) -> None:
        """Write the overlay file atomically; no-op for memory-only stores"""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".overlay-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(patches, handle, indent=2, ensure_ascii=False, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise DataSourceError(f"Could not write overlay file: {self.path}", error=str(e))

    @staticmethod
    def _clean(patch: Mapping[str, Any]) -> Dict[str, Any]:
        return {key: deepcopy(value) for key, value in patch.items() if key != "id"}


def parse_citation_lines(raw: Any) -> List[Dict[str, Any]]:
    """
    Parse admin-entered citation lines.

    One citation per line: ``category | sourceType | urlOrRef | title | accessed | note``.
    Lines with fewer than three parts or no urlOrRef are skipped. Unknown
    source types become "other". Any further ``|`` belongs to the note.
    """
    if not isinstance(raw, str):
        return []

    lines = [line.strip() for line in raw.splitlines() if line.strip()]
    citations = []
    for index, line in enumerate(lines):
        parts = [part.strip() for part in line.split("|")]
        if len(parts) < 3:
            continue
        category = parts[0] or "unspecified"
        url_or_ref = parts[2]
        if not url_or_ref:
            continue
        source_type = (parts[1] or "other").lower()
        note = " | ".join(parts[5:]).strip() if len(parts) > 5 else ""
        citations.append(
            {
                "id": f"{category}-{index + 1}",
                "category": category,
                "field": None,
                "sourceType": source_type if source_type in CITATION_SOURCE_TYPES else "other",
                "urlOrRef": url_or_ref,
                "title": parts[3] if len(parts) > 3 and parts[3] else None,
                "accessed": parts[4] if len(parts) > 4 and parts[4] else None,
                "note": note or None,
            }
        )
    return citations


def _structured_citations(raw: List[Any]) -> List[Dict[str, Any]]:
    citations = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        source_type = str(item.get("sourceType") or "other").lower()
        citations.append(
            {
                "id": item["id"] if isinstance(item.get("id"), str) and item["id"] else f"citation-{index + 1}",
                "category": str(item.get("category") or "unspecified"),
                "field": item.get("field"),
                "sourceType": source_type if source_type in CITATION_SOURCE_TYPES else "other",
                "urlOrRef": str(item.get("urlOrRef") or ""),
                "title": item.get("title"),
                "accessed": item.get("accessed"),
                "note": item.get("note"),
            }
        )
    return citations


def merge_record(
    base: Mapping[str, Any],
    overlay_patch: Optional[Mapping[str, Any]] = None,
    published_fields: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Shallow-merge base <- overlay <- published fields, then normalise the
    fields admins enter as free text. The base ``id`` always wins.
    """
    record: Dict[str, Any] = dict(base)
    for layer in (overlay_patch, published_fields):
        if layer:
            record.update({key: value for key, value in layer.items() if key != "id"})

    for field in LIST_FIELDS:
        if isinstance(record.get(field), str):
            record[field] = split_list(record[field])

    if isinstance(record.get("citations"), list):
        record["citations"] = _structured_citations(record["citations"])
    elif not is_blank(record.get("citationsRaw")):
        parsed = parse_citation_lines(record["citationsRaw"])
        if parsed:
            record["citations"] = parsed

    return record


class OverlayMerge:
    """Produces the merged records the record adapter consumes"""

    def __init__(self, catalog: CatalogReader, overlay: OverlayStore):
        self.catalog = catalog
        self.overlay = overlay

    def merged_products(self, published_by_id: Optional[Mapping[str, Mapping[str, Any]]] = None) -> List[Dict[str, Any]]:
        published_by_id = published_by_id or {}
        patches = self.overlay.all()
        return [
            merge_record(base, patches.get(base["id"]), published_by_id.get(base["id"]))
            for base in self.catalog.list_products()
        ]

    def merged_product(
        self, product_id: str, published_fields: Optional[Mapping[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        for base in self.catalog.list_products():
            if base["id"] == product_id:
                return merge_record(base, self.overlay.get(product_id), published_fields)
        return None

    def product_ids(self) -> List[str]:
        return [base["id"] for base in self.catalog.list_products()]
