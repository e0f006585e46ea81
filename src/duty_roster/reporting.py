"""
Reporting and Export Module for Duty Roster Planning

Turns a generated month into PDF, Excel, CSV and JPEG files, and builds the
plain-text summary shown on the dashboard.
"""

import pandas as pd
from PIL import Image, ImageDraw, ImageFont
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, PageBreak
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from datetime import date
import calendar
from pathlib import Path
from typing import Dict, List, Optional
import logging

from .roster_model import DeptPair, MonthSchedule, RosterConfig, SlotValue
from .scheduler_logic import ScheduleResult
from .shift_counter import ShiftCounter

UNASSIGNED = "---"


def format_slot(config: RosterConfig, value: SlotValue, separator: str = " / ") -> str:
    """Display text for one slot of a working day"""
    if isinstance(value, DeptPair):
        return separator.join(config.name_of(e) if e else UNASSIGNED for e in (value.dept_a, value.dept_b))
    if value is None:
        return UNASSIGNED
    return config.name_of(value)


def non_working_label(entry) -> str:
    return "Weekend" if entry.reason == "weekend" else "Closed"


class ReportGenerator:
    """Main class for generating reports and exports"""

    def __init__(self, config: RosterConfig):
        self.config = config
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom report styles"""
        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Heading1'],
            fontSize=18,
            spaceAfter=30,
            alignment=1  # Center alignment
        ))

        self.styles.add(ParagraphStyle(
            name='CustomHeading',
            parent=self.styles['Heading2'],
            fontSize=14,
            spaceAfter=12
        ))

    def _slot_headers(self) -> List[str]:
        return [f"{slot.time} {slot.label}" for slot in self.config.shifts]

    def export_calendar_pdf(self, schedule: MonthSchedule, counter: ShiftCounter, output_path: str,
                            schedule_result: Optional[ScheduleResult] = None) -> bool:
        """Export the month as a day-by-slot table plus statistics"""
        try:
            doc = SimpleDocTemplate(
                output_path,
                pagesize=landscape(A4),
                rightMargin=0.5*inch,
                leftMargin=0.5*inch,
                topMargin=0.5*inch,
                bottomMargin=0.5*inch
            )

            story = []

            month_name = calendar.month_name[schedule.month]
            title = Paragraph(f"Duty Roster - {month_name} {schedule.year}", self.styles['CustomTitle'])
            story.append(title)
            story.append(Spacer(1, 20))

            if schedule_result:
                story.append(self._create_generation_summary(schedule_result))
                story.append(Spacer(1, 20))

            story.append(self._create_schedule_table(schedule))

            story.append(PageBreak())
            story.extend(self._create_statistics_content(counter))

            doc.build(story)
            return True

        except Exception as e:
            logging.error(f"Error creating PDF: {e}", exc_info=True)
            return False

    def _create_schedule_table(self, schedule: MonthSchedule) -> Table:
        """One row per calendar day, one column per slot"""
        data = [['Day'] + self._slot_headers()]
        weekend_rows = []

        for day in range(1, schedule.days_in_month + 1):
            date_obj = date(schedule.year, schedule.month, day)
            label = f"{day} {date_obj.strftime('%a')}"
            entry = schedule.days.get(day)
            if entry is None:
                data.append([label] + [''] * len(self.config.shifts))
            elif not entry.is_working:
                data.append([label] + [non_working_label(entry)] * len(self.config.shifts))
                weekend_rows.append(len(data) - 1)
            else:
                data.append([label] + [format_slot(self.config, entry.get(slot.id), "\n") for slot in self.config.shifts])

        col_width = 9.5 * inch / max(len(self.config.shifts), 1)
        table = Table(data, colWidths=[0.8*inch] + [col_width] * len(self.config.shifts), repeatRows=1)

        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 7),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]
        for row in weekend_rows:
            style.append(('BACKGROUND', (0, row), (-1, row), colors.lightgrey))
        table.setStyle(TableStyle(style))

        return table

    def _create_statistics_content(self, counter: ShiftCounter) -> List:
        """Per-employee totals and per-slot breakdown"""
        content = []

        content.append(Paragraph("Roster Statistics", self.styles['CustomTitle']))
        content.append(Spacer(1, 20))
        content.append(Paragraph("Shifts per Employee", self.styles['CustomHeading']))

        slot_ids = [slot.id for slot in self.config.shifts]
        emp_data = [['Employee', 'Department', 'Total'] + [f"S{slot_id}" for slot_id in slot_ids]]
        zero_rows = []

        for emp in self.config.employees():
            if emp.id not in counter:
                continue
            emp_data.append(
                [emp.name, emp.department.value, str(counter.total(emp.id))]
                + [str(counter.count(emp.id, slot_id)) for slot_id in slot_ids]
            )
            if counter.total(emp.id) == 0:
                zero_rows.append(len(emp_data) - 1)

        emp_table = Table(emp_data)
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
        ]
        for row in zero_rows:
            style.append(('BACKGROUND', (0, row), (-1, row), colors.lightcoral))
        emp_table.setStyle(TableStyle(style))

        content.append(emp_table)
        return content

    def _create_generation_summary(self, schedule_result: ScheduleResult) -> Table:
        """Summary of the generation run for the PDF header"""
        summary_data = [
            ['Generation Summary', ''],
            ['Status', 'Complete' if schedule_result.success else 'Incomplete'],
            ['Seed', 'none' if schedule_result.seed is None else str(schedule_result.seed)],
            ['Unfilled Shifts', str(len(schedule_result.placement_failures))],
            ['Unmet Guarantees', str(len(schedule_result.unmet_guarantees))],
            ['Message', schedule_result.message]
        ]

        summary_table = Table(summary_data, colWidths=[2*inch, 5*inch])
        summary_table.setStyle(TableStyle([
            ('SPAN', (0, 0), (-1, 0)),
            ('BACKGROUND', (0, 0), (-1, 0), colors.lightblue),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
        ]))

        return summary_table

    def export_schedule_excel(self, schedule: MonthSchedule, counter: ShiftCounter, output_path: str,
                              schedule_result: Optional[ScheduleResult] = None) -> bool:
        """Export schedule to Excel with statistics and issues sheets"""
        try:
            with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                self._create_schedule_dataframe(schedule).to_excel(writer, sheet_name='Schedule', index=False)
                self._create_statistics_dataframe(counter).to_excel(writer, sheet_name='Statistics', index=False)

                if schedule_result:
                    self._create_issues_dataframe(schedule_result).to_excel(writer, sheet_name='Issues', index=False)

                self._format_excel_worksheets(writer)

            return True

        except Exception as e:
            logging.error(f"Error exporting to Excel: {e}", exc_info=True)
            return False

    def _create_schedule_dataframe(self, schedule: MonthSchedule) -> pd.DataFrame:
        """Create schedule DataFrame for Excel and CSV export"""
        headers = self._slot_headers()
        data = []

        for day in range(1, schedule.days_in_month + 1):
            date_obj = date(schedule.year, schedule.month, day)
            row = {'Date': date_obj.strftime("%Y-%m-%d"), 'Day': date_obj.strftime("%A")}
            entry = schedule.days.get(day)
            for header, slot in zip(headers, self.config.shifts):
                if entry is None:
                    row[header] = ''
                elif not entry.is_working:
                    row[header] = non_working_label(entry)
                else:
                    row[header] = format_slot(self.config, entry.get(slot.id))
            data.append(row)

        return pd.DataFrame(data, columns=['Date', 'Day'] + headers)

    def _create_statistics_dataframe(self, counter: ShiftCounter) -> pd.DataFrame:
        data = []
        for emp in self.config.employees():
            if emp.id not in counter:
                continue
            row = {
                'Employee': emp.name,
                'Department': emp.department.value,
                'Total_Shifts': counter.total(emp.id),
            }
            for slot in self.config.shifts:
                row[f"Shift_{slot.id}"] = counter.count(emp.id, slot.id)
            data.append(row)
        return pd.DataFrame(data)

    def _create_issues_dataframe(self, schedule_result: ScheduleResult) -> pd.DataFrame:
        data = [
            {
                'Kind': issue.kind.value,
                'Day': issue.day,
                'Shift': issue.slot_id,
                'Employee': self.config.name_of(issue.employee_id),
                'Description': issue.description
            }
            for issue in schedule_result.issues
        ]
        return pd.DataFrame(data, columns=['Kind', 'Day', 'Shift', 'Employee', 'Description'])

    def _format_excel_worksheets(self, writer):
        """Header colours and column widths on the schedule sheet"""
        from openpyxl.styles import PatternFill, Font

        schedule_ws = writer.sheets['Schedule']

        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True)

        for cell in schedule_ws[1]:
            cell.fill = header_fill
            cell.font = header_font

        for column in schedule_ws.columns:
            column_letter = column[0].column_letter
            max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
            schedule_ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

    def export_schedule_csv(self, schedule: MonthSchedule, output_path: str) -> bool:
        """Export schedule to CSV format"""
        try:
            self._create_schedule_dataframe(schedule).to_csv(output_path, index=False)
            return True

        except Exception as e:
            logging.error(f"Error exporting to CSV: {e}", exc_info=True)
            return False

    def export_schedule_image(self, schedule: MonthSchedule, output_path: str,
                              scale: int = 2, quality: int = 90) -> bool:
        """Render the schedule table to a JPEG image"""
        try:
            font = ImageFont.load_default()
            headers = ['Day'] + self._slot_headers()
            rows = []
            shaded = []
            for day in range(1, schedule.days_in_month + 1):
                date_obj = date(schedule.year, schedule.month, day)
                entry = schedule.days.get(day)
                label = f"{day} {date_obj.strftime('%a')}"
                if entry is None:
                    cells = [''] * len(self.config.shifts)
                elif not entry.is_working:
                    cells = [non_working_label(entry)] * len(self.config.shifts)
                    shaded.append(len(rows))
                else:
                    cells = [format_slot(self.config, entry.get(slot.id)) for slot in self.config.shifts]
                rows.append([label] + cells)

            cell_w, cell_h, pad = 130 * scale, 22 * scale, 4 * scale
            width = cell_w * len(headers)
            height = cell_h * (len(rows) + 1)
            image = Image.new("RGB", (width, height), "#ffffff")
            draw = ImageDraw.Draw(image)

            for col, text in enumerate(headers):
                x = col * cell_w
                draw.rectangle([x, 0, x + cell_w, cell_h], fill="#366092", outline="#000000")
                draw.text((x + pad, pad), text, fill="#ffffff", font=font)

            for row_idx, row in enumerate(rows, start=1):
                y = row_idx * cell_h
                fill = "#e0e0e0" if (row_idx - 1) in shaded else "#ffffff"
                for col, text in enumerate(row):
                    x = col * cell_w
                    draw.rectangle([x, y, x + cell_w, y + cell_h], fill=fill, outline="#000000")
                    draw.text((x + pad, y + pad), text, fill="#000000", font=font)

            image.save(output_path, format="JPEG", quality=quality)
            return True

        except Exception as e:
            logging.error(f"Error exporting image: {e}", exc_info=True)
            return False

    def create_dashboard_summary(self, schedule: MonthSchedule, counter: ShiftCounter,
                                 schedule_result: Optional[ScheduleResult] = None) -> str:
        """Create text summary for dashboard display"""
        totals = {emp.id: counter.total(emp.id) for emp in self.config.employees() if emp.id in counter}
        unfilled = 0
        for _, assignment in schedule.working_days():
            for slot in self.config.shifts:
                value = assignment.get(slot.id)
                if isinstance(value, DeptPair):
                    unfilled += 2 - len(value.members())
                elif value is None:
                    unfilled += 1

        run_info = ""
        if schedule_result:
            status = "COMPLETE" if schedule_result.success else "INCOMPLETE"
            run_info = f"""
Generation:
• Status: {status}
• Seed: {schedule_result.seed if schedule_result.seed is not None else 'none'}
• Message: {schedule_result.message}
"""

        summary = f"""
ROSTER SUMMARY - {calendar.month_name[schedule.month]} {schedule.year}
{run_info}
Coverage:
• Working Days: {schedule.count_working_days()}
• Total Shifts: {sum(totals.values())}
• Unfilled Positions: {unfilled}

Load:
• Most Shifts: {max(totals.values(), default=0)}
• Fewest Shifts: {min(totals.values(), default=0)}
• Employees Without Shifts: {sum(1 for t in totals.values() if t == 0)}
        """

        if schedule_result and schedule_result.unmet_guarantees:
            summary += "\n\nUNMET GUARANTEES:"
            for issue in schedule_result.unmet_guarantees:
                summary += f"\n• {issue.description}"

        return summary.strip()


class ExportManager:
    """Manager class for handling all export operations"""

    FORMATS = ['pdf', 'excel', 'csv', 'jpeg']
    EXTENSIONS = {'pdf': 'pdf', 'excel': 'xlsx', 'csv': 'csv', 'jpeg': 'jpg'}

    def __init__(self, config: RosterConfig):
        self.config = config
        self.report_generator = ReportGenerator(config)

    def export_calendar(self, schedule: MonthSchedule, counter: ShiftCounter, format_type: str,
                        output_path: str, schedule_result: Optional[ScheduleResult] = None) -> bool:
        """Export a month in the requested format"""
        format_type = format_type.lower()
        if format_type == 'pdf':
            return self.report_generator.export_calendar_pdf(schedule, counter, output_path, schedule_result)
        elif format_type == 'excel':
            return self.report_generator.export_schedule_excel(schedule, counter, output_path, schedule_result)
        elif format_type == 'csv':
            return self.report_generator.export_schedule_csv(schedule, output_path)
        elif format_type in ('jpeg', 'jpg'):
            return self.report_generator.export_schedule_image(schedule, output_path)
        else:
            raise ValueError(f"Unsupported format: {format_type}")

    def get_default_filename(self, year: int, month: int, format_type: str) -> str:
        """Generate default filename for export"""
        extension = self.EXTENSIONS.get(format_type.lower(), format_type.lower())
        return f"vaktliste-{year}-{month:02d}.{extension}"

    def batch_export(self, schedule: MonthSchedule, counter: ShiftCounter, output_dir: str,
                     formats: List[str] = None) -> Dict[str, bool]:
        """Export schedule in multiple formats"""
        if formats is None:
            formats = list(self.FORMATS)

        results = {}
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        for format_type in formats:
            file_path = output_path / self.get_default_filename(schedule.year, schedule.month, format_type)
            try:
                results[format_type] = self.export_calendar(schedule, counter, format_type, str(file_path))
            except ValueError as e:
                logging.error(f"Error exporting {format_type}: {e}", exc_info=True)
                results[format_type] = False

        return results
