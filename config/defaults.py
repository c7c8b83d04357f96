from config.schema import (
    BookingRules,
    SchoolCalendarConfig,
    SchoolConfig,
    Weekday,
)


def default_calendar() -> SchoolCalendarConfig:
    """Standard-Öffnungszeiten einer Fahrschule.

    Tagesraster:
      09:00 - 13:00   vier Fahrstunden
      ── Mittagspause 13:00 - 14:00 ──
      14:00 - 17:00   drei Fahrstunden

    Sonntag ist Ruhetag (kein Fahrbetrieb).
    """
    return SchoolCalendarConfig(
        day_start_time="09:00",
        day_end_time="17:00",
        lunch_start_time="13:00",
        lunch_end_time="14:00",
        weekly_holiday=Weekday.SUNDAY,
    )


def default_booking_rules() -> BookingRules:
    """Buchung frühestens ab morgen, stornierte Slots bleiben am Tag gesperrt."""
    return BookingRules(min_lead_days=1, cancelled_blocks_slot=True,
                        max_search_days=365)


def default_school_config() -> SchoolConfig:
    return SchoolConfig(
        school_name="Muster-Fahrschule",
        calendar=default_calendar(),
        booking=default_booking_rules(),
    )
