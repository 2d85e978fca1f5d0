from __future__ import annotations

import logging
from collections import Counter, OrderedDict
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import ContactRecord
from .normalization import DEFAULT_MOBILE_PREFIX, is_mobile

logger = logging.getLogger(__name__)


class MergeEngine:
    """Fold records sharing a full name into one record with up to three phones."""

    def __init__(self, mobile_prefix: str = DEFAULT_MOBILE_PREFIX):
        self.mobile_prefix = mobile_prefix

    def merge(self, records: Iterable[ContactRecord]) -> List[ContactRecord]:
        groups: "OrderedDict[str, List[ContactRecord]]" = OrderedDict()
        for record in records:
            if not record.full_name or not record.tel:
                continue
            groups.setdefault(record.full_name, []).append(record)
        return [self.merge_group(members) for members in groups.values()]

    def merge_group(self, members: Sequence[ContactRecord]) -> ContactRecord:
        main = members[0].replace()

        second_idx = _first_differing(members, main.tel, start=1)
        if second_idx is None:
            return main

        second = members[second_idx]
        skipped = set()
        if not main.tel2:
            main.tel2 = second.tel
        elif not main.tel3:
            main.tel3 = second.tel
        else:
            _log_skipped(second.tel, main.full_name)
            skipped.add(second.tel)

        # Positional: starts at the third member whatever second's index was.
        third_idx = _first_differing(members, main.tel, start=2, skip=second_idx)
        if third_idx is not None:
            third = members[third_idx]
            if not main.tel3:
                main.tel3 = third.tel
            else:
                _log_skipped(third.tel, main.full_name)
                skipped.add(third.tel)

        considered = {0, second_idx, third_idx}
        for idx, member in enumerate(members):
            phone = member.tel
            if idx in considered or not phone:
                continue
            if phone in main.phone_slots or phone in skipped:
                continue
            _log_skipped(phone, main.full_name)
            skipped.add(phone)

        self._prefer_mobile(main)
        return main

    def _prefer_mobile(self, record: ContactRecord) -> None:
        if is_mobile(record.tel, self.mobile_prefix):
            return
        if is_mobile(record.tel2, self.mobile_prefix):
            record.tel, record.tel2 = record.tel2, record.tel
        elif is_mobile(record.tel3, self.mobile_prefix):
            record.tel, record.tel3 = record.tel3, record.tel


def _first_differing(
    members: Sequence[ContactRecord], phone: str, start: int, skip: Optional[int] = None
) -> Optional[int]:
    for idx in range(start, len(members)):
        if idx == skip:
            continue
        candidate = members[idx].tel
        if candidate and candidate != phone:
            return idx
    return None


def _log_skipped(phone: str, full_name: str) -> None:
    logger.warning("Due to max numbers, skipped %s for %s.", phone, full_name)


def merge_records(
    records: Iterable[ContactRecord], mobile_prefix: str = DEFAULT_MOBILE_PREFIX
) -> List[ContactRecord]:
    return MergeEngine(mobile_prefix=mobile_prefix).merge(records)


def dedupe_records(records: Iterable[ContactRecord]) -> List[ContactRecord]:
    """Keep the first record of every phone triple; records without phones all share one key."""
    seen = set()
    distinct: List[ContactRecord] = []
    for record in records:
        key = record.phone_key()
        if key in seen:
            continue
        seen.add(key)
        distinct.append(record)
    return distinct


def find_duplicate_phones(records: Iterable[ContactRecord]) -> List[Tuple[str, int]]:
    counts: "Counter[str]" = Counter()
    for record in records:
        for phone in record.phone_slots:
            if phone and phone.strip():
                counts[phone] += 1
    # Counter keeps insertion order, so this is first-seen order.
    return [(phone, count) for phone, count in counts.items() if count > 1]
