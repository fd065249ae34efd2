"""
Journal d'exécution - date de la dernière passe complète, survit aux redémarrages
"""

import logging
import os
from datetime import date
from pathlib import Path
from typing import Optional

from dateutil.parser import isoparse

logger = logging.getLogger(__name__)


class ExecutionJournal:
    """Un seul emplacement : un fichier texte contenant une date ISO (2025-06-02)"""

    def __init__(self, path):
        self.path = Path(path)

    def read(self) -> Optional[date]:
        if not self.path.exists():
            return None
        try:
            content = self.path.read_text(encoding="utf-8").strip()
            return isoparse(content).date()
        except (OSError, ValueError) as e:
            # journal illisible = journal absent, le rattrapage repart d'hier
            logger.error(f"Failed to load last execution date from {self.path}: {e}")
            return None

    def write(self, day: date) -> bool:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(day.isoformat(), encoding="utf-8")
            os.replace(tmp, self.path)
            return True
        except OSError as e:
            logger.error(f"Failed to save last execution date {day} to {self.path}: {e}")
            return False
