"""Tests for inventory import and session export."""

import pandas as pd
import pytest

from exceptions import ValidationError
from table_io import (
    EXPORT_COLUMNS, EXPORT_SHEET_NAME, read_rows, export_session, export_file_name, session_to_dataframe,
)


class TestReadRows:

    def test_csv_keeps_text(self, test_dir):
        path = test_dir / "bales.csv"
        path.write_text("Tag,Mic\n000123,4.2\nBL-9,\n,\n", encoding='utf-8')

        rows, columns = read_rows(path)

        assert columns == ['Tag', 'Mic']
        assert rows == [{'Tag': '000123', 'Mic': '4.2'}, {'Tag': 'BL-9', 'Mic': None}]

    def test_excel_first_sheet(self, test_dir):
        path = test_dir / "bales.xlsx"
        with pd.ExcelWriter(path, engine='openpyxl') as writer:
            pd.DataFrame({'Tag': ['A1', 'A2'], 'Mic': ['4.1', '4.5']}).to_excel(writer, sheet_name='HVI', index=False)
            pd.DataFrame({'Other': ['x']}).to_excel(writer, sheet_name='Notes', index=False)

        rows, columns = read_rows(path)

        assert columns == ['Tag', 'Mic']
        assert [r['Tag'] for r in rows] == ['A1', 'A2']

    def test_header_only_file(self, test_dir):
        path = test_dir / "empty.csv"
        path.write_text("Tag,Mic\n", encoding='utf-8')
        with pytest.raises(ValidationError, match="no data"):
            read_rows(path)

    def test_unsupported_type(self, test_dir):
        path = test_dir / "bales.txt"
        path.write_text("Tag\nA\n", encoding='utf-8')
        with pytest.raises(ValidationError, match="Unsupported"):
            read_rows(path)

    def test_missing_file(self, test_dir):
        with pytest.raises(ValidationError):
            read_rows(test_dir / "missing.xlsx")


class TestExport:

    def test_file_name(self, inventory_session):
        assert export_file_name(inventory_session) == "Lot_L7__2026_10_19__Export.xlsx"

    def test_dataframe_columns(self, inventory_session):
        df = session_to_dataframe(inventory_session)
        assert list(df.columns) == EXPORT_COLUMNS + ['Bale Tag', 'Mic', 'Strength']
        assert len(df) == len(inventory_session.bales)

    def test_empty_session_rejected(self, engine, test_dir):
        session, _ = engine.create_manual_session("E1", 1)
        with pytest.raises(ValidationError, match="No data to export"):
            export_session(session, test_dir)

    def test_manual_export(self, engine, test_dir):
        session, candidate = engine.create_manual_session("E2", 8)
        session = engine.complete_bale(session, candidate, 475.5).session

        path = export_session(session, test_dir)
        df = pd.read_excel(path, sheet_name=EXPORT_SHEET_NAME)

        assert df.loc[0, 'Bale ID'] == "E2-8"
        assert df.loc[0, 'Mill Lot'] == "E2"
        assert df.loc[0, 'Mill Bale #'] == 8
        assert df.loc[0, 'Weight'] == 475.5
        assert df.loc[0, 'Status'] == "completed"

    def test_export_then_reimport(self, engine, inventory_session, test_dir):
        bale, _ = engine.lookup_scan(inventory_session, 'BL-1001')
        session = engine.complete_bale(inventory_session, bale, 480).session

        path = export_session(session, test_dir)
        rows, columns = read_rows(path)
        reimported = engine.create_inventory_session(rows, 'Bale Tag', ['Mic', 'Strength'], lot='L8')

        assert 'Bale Tag' in columns
        assert [b.id for b in reimported.bales] == [b.id for b in session.bales]
        assert [b.mapped_values for b in reimported.bales] == [b.mapped_values for b in session.bales]
