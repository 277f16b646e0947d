"""Channel catalogue, profitability conventions and month labels."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

ALL = "all"


class Channel(str, Enum):
    BNI_GUELAGUETZA = "BNI GUELAGUETZA"
    BNI_ANTEQUERA = "BNI ANTEQUERA"
    BOCA_EN_BOCA = "BOCA EN BOCA"
    META_ADS = "REDES SOCIALES (META ADS)"
    EMAIL_MKT = "EMAIL-MKT"
    WHATSAPP = "WHATSAPP"
    PATROCINIO_EVENTOS = "PATROCINIO EVENTOS"
    OTROS = "OTROS (PLATICAS, PARTICIPACIÓN EN EVENTOS EXTRAS)"

    @classmethod
    def parse(cls, value: object) -> Optional["Channel"]:
        """Exact match first, then case-insensitive; ``None`` when unknown."""
        s = str(value if value is not None else "").strip()
        try:
            return cls(s)
        except ValueError:
            pass
        upper = s.upper()
        for channel in cls:
            if channel.value.upper() == upper:
                return channel
        return None


class Profitability(str, Enum):
    ROI = "ROI"     # (revenue - spend) / spend * 100
    ROAS = "ROAS"   # revenue / spend


# Every channel must pick a convention; the check below fails at import time
# when a channel is added without one.
PROFITABILITY_CONVENTION: Dict[Channel, Profitability] = {
    Channel.BNI_GUELAGUETZA: Profitability.ROI,
    Channel.BNI_ANTEQUERA: Profitability.ROI,
    Channel.BOCA_EN_BOCA: Profitability.ROI,
    Channel.META_ADS: Profitability.ROAS,
    Channel.EMAIL_MKT: Profitability.ROI,
    Channel.WHATSAPP: Profitability.ROI,
    Channel.PATROCINIO_EVENTOS: Profitability.ROI,
    Channel.OTROS: Profitability.ROI,
}

_missing = [c.value for c in Channel if c not in PROFITABILITY_CONVENTION]
if _missing:
    raise RuntimeError(f"Channels without a profitability convention: {', '.join(_missing)}")

CHANNELS = [c.value for c in Channel]


def profitability_for(channel: object) -> Profitability:
    """Convention for the exact catalogue spelling of *channel*; anything else reports ROI."""
    try:
        parsed = Channel(channel)
    except ValueError:
        return Profitability.ROI
    return PROFITABILITY_CONVENTION[parsed]


def is_roas_channel(channel: object) -> bool:
    return profitability_for(channel) is Profitability.ROAS


MONTH_LABELS: Dict[int, str] = {
    1: "January",
    2: "February",
    3: "March",
    4: "April",
    5: "May",
    6: "June",
    7: "July",
    8: "August",
    9: "September",
    10: "October",
    11: "November",
    12: "December",
}


def month_label(month: object) -> str:
    try:
        return MONTH_LABELS[int(month)]
    except (KeyError, TypeError, ValueError):
        return f"Month {month}"
