import pytest
import sys
from pathlib import Path
import tempfile
import os

import pandas as pd
from PIL import Image

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from duty_roster.roster_model import default_roster_config
from duty_roster.reporting import ExportManager, ReportGenerator, format_slot
from duty_roster.scheduler_logic import ShiftScheduler


@pytest.fixture
def config():
    return default_roster_config()


@pytest.fixture
def result(config):
    """February 2023 with one closed weekday so every row type appears"""
    return ShiftScheduler(config).generate_schedule(2023, 2, closed_days=[17])


@pytest.fixture
def export_manager(config):
    """Fixture for an ExportManager instance."""
    return ExportManager(config)


def temp_output(suffix):
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmpfile:
        return tmpfile.name


def test_pdf_export_basic(export_manager, result):
    """Test PDF export works on a generated month."""
    output_path = temp_output(".pdf")
    success = export_manager.export_calendar(result.schedule, result.counter, "pdf", output_path, result)
    assert success
    assert os.path.exists(output_path)
    assert os.path.getsize(output_path) > 200
    os.unlink(output_path)


def test_pdf_export_without_generation_summary(export_manager, result):
    """A reloaded roster has no generation result; export must still work."""
    output_path = temp_output(".pdf")
    assert export_manager.export_calendar(result.schedule, result.counter, "pdf", output_path)
    os.unlink(output_path)


def test_pdf_export_bad_path(export_manager, result):
    """Test PDF export failure if path is unwritable (should not throw, just return False)."""
    success = export_manager.export_calendar(
        result.schedule, result.counter, "pdf", "/not_a_dir/this_file_should_fail.pdf"
    )
    assert success is False


def test_excel_export_basic(export_manager, result):
    """
    Why this is important: Ensures the Excel export functionality works
    without crashing and produces a workbook with schedule and statistics.
    """
    output_path = temp_output(".xlsx")
    success = export_manager.export_calendar(result.schedule, result.counter, "excel", output_path, result)

    assert success
    sheets = pd.read_excel(output_path, sheet_name=None)
    assert "Schedule" in sheets
    assert "Statistics" in sheets
    assert len(sheets["Schedule"]) == 28
    os.unlink(output_path)


def test_csv_export_basic(export_manager, result, config):
    """
    Why this is important: Ensures the CSV export functionality works
    without crashing and lists every day of the month.
    """
    output_path = temp_output(".csv")
    success = export_manager.export_calendar(result.schedule, result.counter, "csv", output_path)

    assert success
    frame = pd.read_csv(output_path)
    assert len(frame) == 28
    assert list(frame.columns[:2]) == ["Date", "Day"]
    assert len(frame.columns) == len(config.shifts) + 2
    os.unlink(output_path)


def test_jpeg_export_basic(export_manager, result):
    """
    Why this is important: The image export is what gets posted on the
    notice board. It must produce a readable JPEG.
    """
    output_path = temp_output(".jpg")
    success = export_manager.export_calendar(result.schedule, result.counter, "jpeg", output_path)

    assert success
    with Image.open(output_path) as image:
        assert image.format == "JPEG"
        assert image.size[0] > 0 and image.size[1] > 0
    os.unlink(output_path)


def test_unsupported_format_raises(export_manager, result):
    with pytest.raises(ValueError):
        export_manager.export_calendar(result.schedule, result.counter, "docx", "out.docx")


def test_default_filename(export_manager):
    assert export_manager.get_default_filename(2023, 2, "jpeg") == "vaktliste-2023-02.jpg"
    assert export_manager.get_default_filename(2023, 11, "excel") == "vaktliste-2023-11.xlsx"


def test_batch_export_writes_every_format(export_manager, result):
    with tempfile.TemporaryDirectory() as output_dir:
        outcome = export_manager.batch_export(result.schedule, result.counter, output_dir)

        assert outcome == {"pdf": True, "excel": True, "csv": True, "jpeg": True}
        assert sorted(os.listdir(output_dir)) == [
            "vaktliste-2023-02.csv",
            "vaktliste-2023-02.jpg",
            "vaktliste-2023-02.pdf",
            "vaktliste-2023-02.xlsx",
        ]


def test_dashboard_summary(config, result):
    summary = ReportGenerator(config).create_dashboard_summary(result.schedule, result.counter, result)
    assert "February 2023" in summary
    assert "Working Days: 19" in summary
    assert "Unfilled Positions: 0" in summary


def test_format_slot_names_both_departments(config, result):
    assignment = result.schedule[1]
    text = format_slot(config, assignment.get(3))
    first, second = text.split(" / ")
    assert first == config.name_of(assignment.get(3).dept_a)
    assert second == config.name_of(assignment.get(3).dept_b)
