import csv

import pandas as pd

from vcard_cleaner.csv_io import (
    CSV_COLUMNS,
    dataframe_to_records,
    load_csv,
    records_to_dataframe,
    save_csv,
)
from vcard_cleaner.models import ContactRecord


def test_load_csv_normalizes_phones_and_applies_defaults(tmp_path):
    df = pd.DataFrame(
        [
            {"Name": "Bob", "FullName": "Bob Smith", "Tel": "+972501234567", "Tel2": "00441234567", "Tel3": "", "Email": "bob@example.com"},
            {"Name": "", "FullName": "", "Tel": "0521234567", "Tel2": "", "Tel3": "", "Email": ""},
            {"Name": "Dana", "FullName": "", "Tel": "", "Tel2": "", "Tel3": "", "Email": ""},
        ]
    )
    path = tmp_path / "contacts.csv"
    df.to_csv(path, index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)

    records = load_csv(str(path))
    assert len(records) == 3
    bob, phone_only, dana = records
    assert bob.phone_slots == ("0501234567", "013441234567", "")
    assert bob.extra["EMAIL"] == "bob@example.com"
    assert phone_only.name == "0521234567"
    assert phone_only.full_name == "0521234567"
    assert dana.full_name == "Dana"


def test_load_csv_decodes_quoted_printable_cells(tmp_path):
    df = pd.DataFrame(
        [
            {
                "Name": "N;CHARSET=UTF-8;ENCODING=QUOTED-PRINTABLE:=D7=A9=D7=9C=D7=95=D7=9D",
                "FullName": "FN;CHARSET=UTF-8;ENCODING=QUOTED-PRINTABLE:=D7=A9=D7=9C=D7=95=D7=9D",
                "Tel": "0501234567",
            }
        ]
    )
    path = tmp_path / "qp.csv"
    df.to_csv(path, index=False, encoding="utf-8")
    record = load_csv(str(path))[0]
    assert record.name == "שלום"
    assert record.full_name == "שלום"


def test_dataframe_to_records_accepts_header_synonyms():
    df = pd.DataFrame(
        [{"Full Name": "Eli Cohen", "Phone": "0501234567", "ORG": "Acme", "Org_Directory": "dir"}]
    )
    record = dataframe_to_records(df)[0]
    assert record.full_name == "Eli Cohen"
    assert record.name == "0501234567"
    assert record.tel == "0501234567"
    assert record.extra == {"ORG": "Acme", "ORG-DIRECTORY": "dir"}


def test_load_csv_skips_blank_rows_and_missing_files(tmp_path):
    path = tmp_path / "blank.csv"
    path.write_text("Name,FullName,Tel\n,,\nAmy,Amy,0501234567\n", encoding="utf-8")
    records = load_csv(str(path))
    assert [record.full_name for record in records] == ["Amy"]
    assert load_csv(str(tmp_path / "missing.csv")) == []
    assert load_csv(None) == []


def test_load_csv_reads_tsv(tmp_path):
    path = tmp_path / "contacts.tsv"
    path.write_text("Name\tFullName\tTel\nAmy\tAmy Levi\t0501234567\n", encoding="utf-8")
    record = load_csv(str(path))[0]
    assert record.full_name == "Amy Levi"
    assert record.tel == "0501234567"


def test_records_to_dataframe_uses_fixed_columns():
    record = ContactRecord(
        name="Bob",
        full_name="Bob Smith",
        tel="0501234567",
        extra={"EMAIL": "bob@example.com", "CONTACT-URI": "mailto:bob@example.com"},
    )
    df = records_to_dataframe([record])
    assert list(df.columns) == CSV_COLUMNS
    assert CSV_COLUMNS[:6] == ["Name", "FullName", "Tel", "Tel2", "Tel3", "Email"]
    row = df.iloc[0]
    assert row["Email"] == "bob@example.com"
    assert row["CONTACT_URI"] == "mailto:bob@example.com"
    assert row["Tel2"] == ""


def test_save_then_load_round_trip(tmp_path):
    records = [
        ContactRecord(name="Bob", full_name="Bob Smith", tel="0501234567", tel2="031234567"),
        ContactRecord(
            name="Amy",
            full_name="Amy Levi",
            tel="013442071234567",
            extra={"NOTE": "met at, the conference"},
        ),
    ]
    path = tmp_path / "round.csv"
    assert save_csv(records, str(path)) == 2
    with open(path, "r", encoding="utf-8") as handle:
        assert handle.readline().startswith('"Name","FullName","Tel"')

    loaded = load_csv(str(path))
    assert [record.phone_slots for record in loaded] == [record.phone_slots for record in records]
    assert [record.full_name for record in loaded] == ["Bob Smith", "Amy Levi"]
    assert loaded[1].extra == {"NOTE": "met at, the conference"}
