import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from mockexam.models.catalog import ExamCatalog
from mockexam.utils.exceptions import CatalogNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[1] / "data" / "section_catalogs.json"


class CatalogService:
    def __init__(self, catalog_path: Optional[Union[str, Path]] = None):
        """
        Load the exam presets.

        The bundled file lives at mockexam/data/section_catalogs.json; a
        different file can be passed in (SECTION_CATALOG_PATH in settings).
        """
        self.catalog_path = Path(catalog_path) if catalog_path else DEFAULT_CATALOG_PATH
        self.catalogs: Dict[str, ExamCatalog] = {}
        self._load_catalogs()

    def _load_catalogs(self):
        """Load catalog JSON file"""
        with open(self.catalog_path, "r", encoding="utf-8") as f:
            raw_catalogs = json.load(f)

        for raw in raw_catalogs:
            catalog = ExamCatalog.model_validate(raw)
            if catalog.code in self.catalogs:
                raise ValueError(f"Duplicate catalog code {catalog.code}")
            self.catalogs[catalog.code] = catalog

        logger.info(
            "Loaded %d exam catalogs from %s", len(self.catalogs), self.catalog_path
        )

    def list_catalogs(self) -> List[ExamCatalog]:
        """Get all catalogs in file order"""
        return list(self.catalogs.values())

    def get_catalog(self, code: str) -> ExamCatalog:
        """Get a specific catalog by code"""
        catalog = self.catalogs.get(code)
        if catalog is None:
            raise CatalogNotFoundError(f"Catalog {code} not found")
        return catalog
