"""Normalize hour-category labels coming from clients into HourCategory values.

Older clients and imported spreadsheets send free-text labels, sometimes in
Vietnamese ("Giờ thường", "Tăng ca"). Labels are lower-cased, stripped of
diacritics and punctuation, then looked up in the synonym table.
"""
import re
import unicodedata
from typing import Optional

from app.models.timeclock import HourCategory

_SYNONYMS = {
    # regular
    "regular": HourCategory.REGULAR,
    "regular hours": HourCategory.REGULAR,
    "gio thuong": HourCategory.REGULAR,
    "gio lam thuong": HourCategory.REGULAR,
    "lam tai van phong": HourCategory.REGULAR,
    "lam viec tai van phong": HourCategory.REGULAR,
    "lam tai vp": HourCategory.REGULAR,
    "tai van phong": HourCategory.REGULAR,
    # weekend
    "weekend": HourCategory.WEEKEND,
    "weekend overtime": HourCategory.WEEKEND,
    "weekend over time": HourCategory.WEEKEND,
    "cuoi tuan": HourCategory.WEEKEND,
    "cuoi tuan tang ca": HourCategory.WEEKEND,
    # overtime
    "overtime": HourCategory.OVERTIME,
    "ot": HourCategory.OVERTIME,
    "gio lam them": HourCategory.OVERTIME,
    "tang ca": HourCategory.OVERTIME,
    # holiday
    "holiday": HourCategory.HOLIDAY,
    "ngay le": HourCategory.HOLIDAY,
    # bonus
    "bonus": HourCategory.BONUS,
    "bonus hours": HourCategory.BONUS,
    # work from home
    "wfh": HourCategory.WORK_FROM_HOME,
    "work from home": HourCategory.WORK_FROM_HOME,
    "workfromhome": HourCategory.WORK_FROM_HOME,
    "online": HourCategory.WORK_FROM_HOME,
    "truc tuyen": HourCategory.WORK_FROM_HOME,
    "lam viec tai nha": HourCategory.WORK_FROM_HOME,
    # leave marker
    "on leave": HourCategory.ON_LEAVE,
    "onleave": HourCategory.ON_LEAVE,
    "nghi phep": HourCategory.ON_LEAVE,
}


def _fold(label: str) -> str:
    decomposed = unicodedata.normalize("NFD", label.strip().lower())
    # "đ" has no decomposition
    ascii_only = "".join(c for c in decomposed if not unicodedata.combining(c)).replace("đ", "d")
    return re.sub(r"[^a-z0-9]+", " ", ascii_only).strip()


def normalize_category(raw) -> Optional[HourCategory]:
    """Return the canonical category for ``raw``, or None when it is unknown."""
    if raw is None:
        return None
    if isinstance(raw, HourCategory):
        return raw

    text = str(raw).strip()
    if not text:
        return None

    try:
        return HourCategory(text.lower())
    except ValueError:
        pass

    return _SYNONYMS.get(_fold(text))
