from config.schema import (
    BookingRulesConfig,
    FacilityConfig,
    GalleryHoursConfig,
    OperatingHoursConfig,
    PricingConfig,
    TimeWindow,
)
from models.room import Room, RoomCategory


# Anzeigenamen für Zubehör (Export, CLI)
EQUIPMENT_LABELS: dict[str, str] = {
    "laptop": "Laptop",
    "projector": "Beamer",
    "audio": "Tonanlage",
    "mirrorless": "Systemkamera",
    "camcorder": "Camcorder",
    "wireless_mic": "Funkmikrofon",
    "pin_mic": "Ansteckmikrofon",
    "rode_mic": "Rode-Mikrofon",
    "electronic_board": "Elektronische Tafel",
}


def default_operating_hours() -> OperatingHoursConfig:
    """Standard-Betriebszeiten Seminarräume / E-Studio.

    Mo, Mi–Fr  10:00 - 17:00
    Di         10:00 - 17:00 und 18:00 - 20:00 (Abendöffnung)
    Sa         10:00 - 12:00
    So         geschlossen
    """
    return OperatingHoursConfig(
        weekday=[TimeWindow(start="10:00", end="17:00")],
        tuesday=[
            TimeWindow(start="10:00", end="17:00"),
            TimeWindow(start="18:00", end="20:00"),
        ],
        saturday=[TimeWindow(start="10:00", end="12:00")],
    )


def default_gallery_hours() -> GalleryHoursConfig:
    """Standard-Öffnungszeiten der Galerie.

    Mo, Mi–Fr  09:00 - 18:00
    Di         09:00 - 20:00
    Sa         09:00 - 13:00
    So         geschlossen
    """
    return GalleryHoursConfig(
        weekday=TimeWindow(start="09:00", end="18:00"),
        tuesday=TimeWindow(start="09:00", end="20:00"),
        saturday=TimeWindow(start="09:00", end="13:00"),
    )


def default_rooms() -> list[Room]:
    """Raumkatalog (4.–7. Etage). Preise in KRW pro Stunde."""
    lecture = RoomCategory.LECTURE
    return [
        Room(id="bookcafe", name="북카페", category=lecture,
             hourly_fee_krw=70000, capacity=20, floor="4"),
        Room(id="classroom_all", name="모두의교실", category=lecture,
             hourly_fee_krw=100000, capacity=30, floor="4"),
        Room(id="gallery", name="우리동네 갤러리", category=RoomCategory.GALLERY,
             hourly_fee_krw=0, capacity=30, floor="4",
             note="Tagespreis: Werktag 20.000, Samstag 10.000"),
        Room(id="sangsang1", name="상상교실 1", category=lecture,
             hourly_fee_krw=70000, capacity=20, floor="5"),
        Room(id="sangsang2", name="상상교실 2", category=lecture,
             hourly_fee_krw=50000, capacity=20, floor="5"),
        Room(id="sangsang3", name="상상교실 3", category=lecture,
             hourly_fee_krw=70000, capacity=20, floor="5"),
        Room(id="media", name="E-스튜디오", category=RoomCategory.STUDIO,
             hourly_fee_krw=20000, capacity=12, floor="5"),
        Room(id="it", name="IT강의실", category=lecture,
             hourly_fee_krw=100000, capacity=18, floor="5"),
        Room(id="art", name="아트실", category=lecture,
             hourly_fee_krw=70000, capacity=20, floor="6"),
        Room(id="healing", name="힐링강의실", category=lecture,
             hourly_fee_krw=100000, capacity=20, floor="7"),
        Room(id="maru", name="마루강의실", category=lecture,
             hourly_fee_krw=100000, capacity=25, floor="7"),
    ]


def default_facility_config() -> FacilityConfig:
    """Vollständige Standard-Konfiguration der Einrichtung."""
    return FacilityConfig(
        facility_name="Bürgerzentrum",
        utc_offset_hours=9,
        rooms=default_rooms(),
        operating_hours=default_operating_hours(),
        gallery_hours=default_gallery_hours(),
        booking=BookingRulesConfig(),
        pricing=PricingConfig(),
    )
