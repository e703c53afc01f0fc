"""Konfigurationsmanager: Laden, Speichern und Validieren der Einrichtungs-Config.

Nutzt ruamel.yaml für YAML-Serialisierung mit Kommentaren.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.schema import FacilityConfig

logger = logging.getLogger(__name__)

yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── YAML-KOMMENTAR-AUFBAU ───

def _yaml_header() -> str:
    return f"""\
# ============================================
# Raumvermietung: Einrichtungskonfiguration
# Version: 1.0
# Erstellt: {date.today().isoformat()}
# ============================================
"""


_SECTION_COMMENTS = {
    "rooms": (
        "Räume",
        "hourly_fee_krw = 0 bedeutet Preis nach Vereinbarung.",
    ),
    "operating_hours": (
        "Betriebszeiten Seminarräume & E-Studio",
        "Eine Buchung muss vollständig in EINEM Fenster liegen. Sonntag geschlossen.",
    ),
    "gallery_hours": (
        "Öffnungszeiten Galerie",
        None,
    ),
    "booking": (
        "Buchungsregeln",
        "Zeiten in Minuten. blocking_statuses belegen einen Zeitraum.",
    ),
    "pricing": (
        "Preise (KRW)",
        None,
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "facility_config.yaml"

    def __init__(self, config_path: Optional[Path] = None) -> None:
        self.config_path = Path(config_path) if config_path else self.DEFAULT_CONFIG

    def first_run_check(self) -> bool:
        """Gibt True zurück wenn noch keine Config existiert (Erstaufruf)."""
        return not self.config_path.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> FacilityConfig:
        """Lade Config aus YAML. Validiert automatisch via Pydantic."""
        target = Path(path) if path else self.config_path
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Führen Sie 'python main.py init' aus, um die Einrichtung anzulegen."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        if raw is None:
            raise ValueError(f"Konfigurationsdatei ist leer: {target}")
        try:
            config = FacilityConfig.model_validate(json.loads(json.dumps(raw)))
        except ValidationError as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Pydantic-Fehler: {e}"
            ) from e
        logger.debug(f"Konfiguration geladen: {target} ({len(config.rooms)} Räume)")
        return config

    def load_or_default(self, path: Optional[Path] = None) -> FacilityConfig:
        """Wie load(), fällt aber auf die Standard-Konfiguration zurück."""
        target = Path(path) if path else self.config_path
        if not target.exists():
            from config.defaults import default_facility_config
            logger.info(f"Keine Konfiguration unter {target}, nutze Standardwerte")
            return default_facility_config()
        return self.load(target)

    # ─── Speichern ───

    def save(self, config: FacilityConfig, path: Optional[Path] = None) -> Path:
        """Speichere Config als YAML mit deutschen Kommentaren."""
        target = Path(path) if path else self.config_path
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_yaml_header() + "\n")
            yaml.dump(data, f)

        logger.info(f"Konfiguration gespeichert: {target}")
        return target

    def _build_commented_yaml(self, config: FacilityConfig) -> CommentedMap:
        """Baut die YAML-Struktur mit Kommentaren auf."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            if field not in cm:
                continue
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        if "utc_offset_hours" in cm:
            cm.yaml_add_eol_comment("KST, keine Sommerzeit", "utc_offset_hours")

        return cm
