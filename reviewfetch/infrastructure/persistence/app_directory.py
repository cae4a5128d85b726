"""
App Directory - Local Cache of Known Apps
==========================================

Stores every app seen in a vendor listing (or added by hand) in one JSON
document, together with local metadata that no vendor knows about:
project URL, hidden flag and notes.

ARCHITECTURAL DECISION:
- Records are keyed by (vendor, bundle/package id or native id), compared
  case-insensitively
- Vendor listings only ever add or refresh records; they never delete,
  so apps missing from one listing call (outages, Google Play, manual adds)
  stay in the directory
- Saves go to a temp file that is then renamed over the target, so a crash
  never leaves a truncated document behind
"""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ...domain import AppRecord, ResolvedTarget, StorageError, Vendor

logger = logging.getLogger(__name__)

DirectoryKey = Tuple[Vendor, str]


def make_key(vendor: Vendor, id_or_bundle_id: str) -> DirectoryKey:
    return vendor, (id_or_bundle_id or "").strip().lower()


def _sort_key(record: AppRecord):
    return record.vendor.value, record.name.lower(), record.name


class AppDirectory:
    """
    JSON-backed directory of apps.

    Usage:
        directory = AppDirectory(settings.storage.apps_file)
        directory.load()

        directory.merge_from_vendor_listing(apps, Vendor.APP_STORE)
        target = directory.resolve_for_api("My App")

        directory.save()
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._apps: Dict[DirectoryKey, AppRecord] = {}
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def __len__(self) -> int:
        return len(self._apps)

    # ── Load / Save ────────────────────────────────────────────────

    def load(self):
        """
        Read the document from disk.

        A missing file is not an error: records already held in memory are
        kept and the directory counts as loaded.
        """
        if not self.path.exists():
            self._loaded = True
            logger.debug(f"No app directory at {self.path}, keeping {len(self._apps)} in-memory apps")
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("expected a JSON array of apps")
            records = [AppRecord.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StorageError(
                f"Failed to load app directory from {self.path}: {e}. "
                "Fix or delete the file and run 'list' to rebuild it."
            ) from e

        self._apps = {make_key(r.vendor, r.lookup_id): r for r in records}
        self._loaded = True
        logger.info(f"App directory loaded: {len(self._apps)} apps from {self.path}")

    def ensure_loaded(self):
        """Load once; later calls keep the in-memory state."""
        if not self._loaded:
            self.load()

    def save(self):
        """Write all records sorted by (store, name), atomically."""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        payload = [r.to_dict() for r in self.get_all(include_hidden=True)]

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            try:
                tmp_path.unlink()
            except OSError:
                pass
            raise StorageError(f"Failed to save app directory to {self.path}: {e}") from e

        logger.info(f"App directory saved: {len(payload)} apps to {self.path}")

    # ── Mutation ───────────────────────────────────────────────────

    def merge_from_vendor_listing(self, records: Iterable[AppRecord], vendor: Vendor) -> int:
        """
        Merge a vendor listing into the directory.

        Existing records get the vendor fields overlaid; project_url, is_hidden
        and notes are kept. New records are inserted with the vendor stamped.
        A record added by hand under its native id is re-keyed once the
        listing supplies a bundle id.

        Returns:
            Number of records that were new.
        """
        self.ensure_loaded()
        added = 0
        for incoming in records:
            key = make_key(vendor, incoming.lookup_id)
            existing = self._apps.get(key)
            if existing is None:
                existing = self.get(vendor, incoming.native_id)

            if existing is None:
                self._apps[key] = replace(incoming, vendor=vendor)
                added += 1
                continue

            old_key = make_key(existing.vendor, existing.lookup_id)
            if old_key != key:
                del self._apps[old_key]

            self._apps[key] = replace(
                existing,
                native_id=incoming.native_id,
                name=incoming.name,
                bundle_id=incoming.bundle_id,
                sku=incoming.sku,
                platforms=list(incoming.platforms),
                primary_locale=incoming.primary_locale,
                is_available=incoming.is_available,
                current_version=incoming.current_version,
                vendor=vendor,
            )

        logger.debug(f"Merged {vendor.value} listing: {added} new apps")
        return added

    def add_or_update(self, record: AppRecord):
        """Insert or fully replace a record."""
        self.ensure_loaded()
        self._apps[make_key(record.vendor, record.lookup_id)] = record

    def delete(self, vendor: Vendor, id_or_bundle_id: str) -> bool:
        """Delete by directory key. Returns False if nothing matched."""
        self.ensure_loaded()
        record = self.get(vendor, id_or_bundle_id)
        if record is None:
            return False
        del self._apps[make_key(record.vendor, record.lookup_id)]
        return True

    def update_metadata(
        self,
        vendor: Vendor,
        id_or_bundle_id: str,
        *,
        name: Optional[str] = None,
        project_url: Optional[str] = None,
        is_hidden: Optional[bool] = None,
        notes: Optional[str] = None,
    ) -> Optional[AppRecord]:
        """
        Edit local fields of an existing record. Arguments left as None are
        unchanged; pass "" to clear project_url or notes.
        """
        self.ensure_loaded()
        record = self.get(vendor, id_or_bundle_id)
        if record is None:
            return None

        updates = {}
        if name:
            updates["name"] = name
        if project_url is not None:
            updates["project_url"] = project_url or None
        if is_hidden is not None:
            updates["is_hidden"] = is_hidden
        if notes is not None:
            updates["notes"] = notes or None

        updated = replace(record, **updates)
        self._apps[make_key(updated.vendor, updated.lookup_id)] = updated
        return updated

    # ── Queries ────────────────────────────────────────────────────

    def get(self, vendor: Vendor, id_or_bundle_id: str) -> Optional[AppRecord]:
        """
        Look up by directory key. Records with a bundle id are keyed by it,
        so the native id is accepted as a second chance.
        """
        record = self._apps.get(make_key(vendor, id_or_bundle_id))
        if record is not None:
            return record

        wanted = (id_or_bundle_id or "").strip().lower()
        for candidate in self._apps.values():
            if candidate.vendor == vendor and candidate.native_id.lower() == wanted:
                return candidate
        return None

    def get_all(self, include_hidden: bool = True) -> List[AppRecord]:
        """Sorted snapshot of the directory."""
        apps = [a for a in self._apps.values() if include_hidden or not a.is_hidden]
        return sorted(apps, key=_sort_key)

    def find_by_name(self, query: str, include_hidden: bool = True) -> List[AppRecord]:
        """All apps whose name contains query (case-insensitive)."""
        wanted = (query or "").lower()
        return [a for a in self.get_all(include_hidden) if wanted in a.name.lower()]

    def resolve(self, query: str, include_hidden: bool = True) -> Optional[AppRecord]:
        """
        Resolve an app query to one record.

        Tried in order, all case-insensitive:
            1. exact native id
            2. exact bundle/package id
            3. exact name
            4. name contains query

        When several apps share a name substring, the first one in sorted
        (store, name) order wins.
        """
        if not query or not query.strip():
            return None

        wanted = query.strip().lower()
        candidates = self.get_all(include_hidden)

        tiers = (
            lambda a: a.native_id.lower() == wanted,
            lambda a: a.bundle_id is not None and a.bundle_id.lower() == wanted,
            lambda a: a.name.lower() == wanted,
            lambda a: wanted in a.name.lower(),
        )
        for matches in tiers:
            for app in candidates:
                if matches(app):
                    return app
        return None

    def resolve_for_api(self, query: str, include_hidden: bool = True) -> Optional[ResolvedTarget]:
        """
        Resolve a query and pick the identifier the vendor API expects:
        the numeric app id for App Store, the package name for Google Play.
        """
        app = self.resolve(query, include_hidden)
        if app is None:
            return None

        if app.vendor == Vendor.GOOGLE_PLAY:
            api_identifier = app.bundle_id or app.native_id
        else:
            api_identifier = app.native_id

        return ResolvedTarget(api_identifier=api_identifier, vendor=app.vendor, record=app)
