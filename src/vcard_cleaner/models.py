from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Tuple

PHONE_SLOT_COUNT = 3

# Canonical emission order for the pass-through attributes.
EXTRA_FIELDS: Tuple[str, ...] = (
    "EMAIL",
    "SOURCE",
    "KIND",
    "XML",
    "NICKNAME",
    "PHOTO",
    "BDAY",
    "ANNIVERSARY",
    "GENDER",
    "ADR",
    "IMPP",
    "LANG",
    "TZ",
    "GEO",
    "TITLE",
    "ROLE",
    "LOGO",
    "ORG",
    "MEMBER",
    "RELATED",
    "CATEGORIES",
    "NOTE",
    "PRODID",
    "REV",
    "SOUND",
    "UID",
    "CLIENTPIDMAP",
    "URL",
    "VERSION",
    "KEY",
    "FBURL",
    "CALADRURI",
    "CALURI",
    "BIRTHPLACE",
    "DEATHPLACE",
    "DEATHDATE",
    "EXPERTISE",
    "HOBBY",
    "INTEREST",
    "ORG-DIRECTORY",
    "CONTACT-URI",
    "CREATED",
    "LANGUAGE",
    "SOCIALPROFILE",
    "JSPROP",
)

_EXTRA_FIELD_SET = frozenset(EXTRA_FIELDS)


def is_extra_field(key: str) -> bool:
    return (key or "").upper() in _EXTRA_FIELD_SET


@dataclass
class ContactRecord:
    name: str = ""
    full_name: str = ""
    tel: str = ""
    tel2: str = ""
    tel3: str = ""
    extra: Dict[str, str] = field(default_factory=OrderedDict)

    @property
    def phone_slots(self) -> Tuple[str, str, str]:
        return (self.tel, self.tel2, self.tel3)

    def phone_key(self) -> Tuple[str, str, str]:
        """Identity used by deduplication: the three slots, blanks compared as ``""``."""
        return tuple(value or "" for value in self.phone_slots)  # type: ignore[return-value]

    def assign_phone(self, value: str) -> bool:
        """Put ``value`` in the first empty slot; ``False`` when all three are taken."""
        if not value:
            return False
        if not self.tel:
            self.tel = value
        elif not self.tel2:
            self.tel2 = value
        elif not self.tel3:
            self.tel3 = value
        else:
            return False
        return True

    def set_phone_slot(self, slot: int, value: str) -> bool:
        """Put ``value`` in the 1-based ``slot`` if that slot is still empty."""
        attr = ("tel", "tel2", "tel3")[slot - 1]
        if not value or getattr(self, attr):
            return False
        setattr(self, attr, value)
        return True

    def apply_name_defaults(self) -> None:
        if not self.name.strip():
            self.name = self.tel
        if not self.full_name.strip():
            self.full_name = self.name or self.tel

    def ordered_extra(self) -> "OrderedDict[str, str]":
        ordered: "OrderedDict[str, str]" = OrderedDict()
        for key in EXTRA_FIELDS:
            value = self.extra.get(key, "")
            if value:
                ordered[key] = value
        return ordered

    def replace(self, **changes: Any) -> "ContactRecord":
        changes.setdefault("extra", OrderedDict(self.extra))
        return replace(self, **changes)
