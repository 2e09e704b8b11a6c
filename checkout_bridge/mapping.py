"""
mapping.py — SKU → merchandise identifier table

The table is published to the frontend (GET /mapping.json) and used to resolve
lines that carry a `sku` instead of an `id`. It is loaded from the MAPPING_JSON
environment variable when set, otherwise from a JSON file.

Reloads build a complete new table and then replace the store's single
reference, so concurrent readers see either the old or the new table, never a
partially-written one.
"""

import json
import logging
import os
import threading
from types import MappingProxyType
from typing import Mapping, Optional

from .config import MAPPING_PATH
from .exceptions import MappingError

log = logging.getLogger(__name__)


def read_mapping_source(path: str, env_json: Optional[str] = None) -> dict:
    """
    Reads and validates a mapping source.

    Args:
        path (str): JSON file holding an object {SKU: id}.
        env_json (str | None): Env-embedded JSON; takes precedence over the file.

    Returns:
        dict: The decoded mapping.

    Raises:
        MappingError: If the source is missing, not JSON, or not a JSON object.
    """
    if env_json:
        source = "MAPPING_JSON"
        raw = env_json
    else:
        source = path
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            raise MappingError(f"{source} illisible: {e}")

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise MappingError(f"{source} invalide: {e}")

    if not isinstance(data, dict):
        raise MappingError(f"{source} doit être un objet {{SKU: id}}")
    return data


class MappingStore:
    """
    Holds the current SKU mapping behind one swappable reference.
    """
    def __init__(self, path: str = None, env_var: str = "MAPPING_JSON"):
        self.path = path or MAPPING_PATH
        self.env_var = env_var
        self._mapping = MappingProxyType({})
        self._reload_lock = threading.Lock()

    def _read(self) -> dict:
        return read_mapping_source(self.path, os.environ.get(self.env_var))

    def load_initial(self) -> int:
        """
        Loads the mapping at startup. A missing or malformed source is logged
        and leaves an empty mapping instead of stopping the process.
        """
        try:
            data = self._read()
        except MappingError as e:
            log.error(f"[Mapping] Mapping absent ou invalide, mapping vide utilisé: {e.message}")
            data = {}
        self._mapping = MappingProxyType(data)
        log.info(f"[Mapping] {len(data)} entrées chargées.")
        return len(data)

    def reload(self) -> int:
        """
        Re-reads the source and swaps in the new mapping.
        Returns:
            int: Number of entries now served.
        Raises:
            MappingError: If the source is invalid; the previous mapping stays in place.
        """
        with self._reload_lock:
            try:
                data = self._read()
            except MappingError as e:
                log.error(f"[Mapping] Rechargement refusé, ancien mapping conservé: {e.message}")
                raise
            self._mapping = MappingProxyType(data)
        log.info(f"[Mapping] Rechargé: {len(data)} entrées.")
        return len(data)

    def snapshot(self) -> Mapping:
        return self._mapping

    def resolve(self, sku: str) -> Optional[str]:
        value = self._mapping.get(sku)
        if value is None or isinstance(value, (dict, list)):
            return None
        return str(value)
