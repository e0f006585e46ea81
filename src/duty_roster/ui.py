"""
User Interface for Duty Roster Planning

CustomTkinter-based GUI: month navigation, roster generation, the day by
shift table, per-employee statistics and the saved solutions of the month.
"""

import customtkinter as ctk
from tkinter import messagebox, filedialog
from datetime import datetime, date
import calendar
import random
from typing import Callable, List, Optional
import threading
import logging

from .data_manager import DataManager, DataManagerError, SavedRoster
from .roster_model import MonthSchedule, SchedulerError
from .reporting import ExportManager, format_slot, non_working_label
from .scheduler_logic import ScheduleResult, ShiftScheduler
from .shift_counter import ShiftCounter

logger = logging.getLogger(__name__)


# Configure CustomTkinter
ctk.set_appearance_mode("light")
ctk.set_default_color_theme("blue")


class ScheduleTable(ctk.CTkScrollableFrame):
    """Grid with one row per day and one column per shift"""

    def __init__(self, parent, scheduler: ShiftScheduler):
        super().__init__(parent)
        self.config = scheduler.config

    def clear(self):
        for widget in self.winfo_children():
            widget.destroy()

    def show(self, schedule: Optional[MonthSchedule]):
        self.clear()

        ctk.CTkLabel(self, text="Day", font=ctk.CTkFont(weight="bold")).grid(row=0, column=0, padx=4, pady=4)
        for col, slot in enumerate(self.config.shifts, start=1):
            ctk.CTkLabel(
                self,
                text=f"{slot.time}\n{slot.label}",
                font=ctk.CTkFont(weight="bold")
            ).grid(row=0, column=col, padx=4, pady=4)

        if schedule is None:
            ctk.CTkLabel(self, text="No roster generated for this month").grid(
                row=1, column=0, columnspan=len(self.config.shifts) + 1, pady=20
            )
            return

        for day in range(1, schedule.days_in_month + 1):
            date_obj = date(schedule.year, schedule.month, day)
            entry = schedule.days.get(day)
            is_working = entry is not None and entry.is_working
            row_color = None if is_working else "gray85"

            ctk.CTkLabel(
                self,
                text=f"{day} {date_obj.strftime('%a')}",
                fg_color=row_color
            ).grid(row=day, column=0, sticky="nsew", padx=1, pady=1)

            for col, slot in enumerate(self.config.shifts, start=1):
                if entry is None:
                    text = ""
                elif not is_working:
                    text = non_working_label(entry)
                else:
                    text = format_slot(self.config, entry.get(slot.id), "\n")
                ctk.CTkLabel(self, text=text, fg_color=row_color).grid(
                    row=day, column=col, sticky="nsew", padx=1, pady=1
                )


class StatisticsPanel(ctk.CTkFrame):
    """Shift totals per employee"""

    def __init__(self, parent, scheduler: ShiftScheduler):
        super().__init__(parent, width=300)
        self.config = scheduler.config

        ctk.CTkLabel(
            self,
            text="Statistics",
            font=ctk.CTkFont(size=18, weight="bold")
        ).pack(pady=(10, 10))

        self.stats_frame = ctk.CTkScrollableFrame(self, height=300)
        self.stats_frame.pack(fill="both", expand=True, padx=10, pady=10)

    def update_statistics(self, counter: Optional[ShiftCounter], result: Optional[ScheduleResult] = None):
        for widget in self.stats_frame.winfo_children():
            widget.destroy()

        if counter is None:
            return

        for emp in self.config.employees():
            if emp.id not in counter:
                continue
            emp_frame = ctk.CTkFrame(self.stats_frame)
            emp_frame.pack(fill="x", pady=2)

            total = counter.total(emp.id)
            ctk.CTkLabel(
                emp_frame,
                text=f"{emp.name} ({emp.department.value}): {total}",
                font=ctk.CTkFont(weight="bold")
            ).pack(anchor="w", padx=10, pady=2)

            breakdown = ", ".join(
                f"Shift {slot.id}: {counter.count(emp.id, slot.id)}"
                for slot in self.config.shifts if counter.count(emp.id, slot.id) > 0
            )
            ctk.CTkLabel(emp_frame, text=breakdown or "No shifts").pack(anchor="w", padx=20, pady=2)

            if total == 0:
                emp_frame.configure(fg_color="lightcoral")

        if result and result.unmet_guarantees:
            warn_frame = ctk.CTkFrame(self.stats_frame, fg_color="orange")
            warn_frame.pack(fill="x", pady=(10, 2))
            text = "\n".join(issue.description for issue in result.unmet_guarantees)
            ctk.CTkLabel(warn_frame, text=text, justify="left").pack(anchor="w", padx=10, pady=5)


class SolutionsPanel(ctk.CTkFrame):
    """Saved solutions for the displayed month"""

    def __init__(self, parent, on_load: Callable[[int], None], on_delete: Callable[[int], None]):
        super().__init__(parent, width=300)
        self.on_load = on_load
        self.on_delete = on_delete

        ctk.CTkLabel(
            self,
            text="Saved Solutions",
            font=ctk.CTkFont(size=16, weight="bold")
        ).pack(pady=(10, 5))

        self.list_frame = ctk.CTkScrollableFrame(self, height=200)
        self.list_frame.pack(fill="both", expand=True, padx=10, pady=10)

    def show(self, rosters: List[SavedRoster]):
        for widget in self.list_frame.winfo_children():
            widget.destroy()

        if not rosters:
            ctk.CTkLabel(self.list_frame, text="No saved solutions for this month").pack(pady=10)
            return

        for roster in rosters:
            item = ctk.CTkFrame(self.list_frame)
            item.pack(fill="x", pady=2)

            created = roster.created_at[:10]
            ctk.CTkLabel(item, text=f"Solution {roster.solution_number}  ({created})").pack(side="left", padx=10)
            ctk.CTkButton(
                item, text="Delete", width=60, fg_color="red",
                command=lambda rid=roster.id: self.on_delete(rid)
            ).pack(side="right", padx=5, pady=5)
            ctk.CTkButton(
                item, text="Load", width=60,
                command=lambda rid=roster.id: self.on_load(rid)
            ).pack(side="right", padx=5, pady=5)


class MainWindow(ctk.CTk):
    """Main application window"""

    def __init__(self, data_manager: DataManager, scheduler: ShiftScheduler,
                 export_manager: Optional[ExportManager] = None):
        super().__init__()

        self.title("Duty Roster")
        self.geometry("1400x900")

        self.data_manager = data_manager
        self.scheduler = scheduler
        self.export_manager = export_manager or ExportManager(scheduler.config)

        now = datetime.now()
        self.current_year = now.year
        self.current_month = now.month

        # What is on screen: a fresh result or a reloaded saved roster
        self.schedule: Optional[MonthSchedule] = None
        self.counter: Optional[ShiftCounter] = None
        self.schedule_result: Optional[ScheduleResult] = None

        self._create_widgets()
        self._load_initial_data()

    def _create_widgets(self):
        control_frame = ctk.CTkFrame(self, height=80)
        control_frame.pack(fill="x", padx=10, pady=10)
        control_frame.pack_propagate(False)

        ctk.CTkButton(control_frame, text="<", width=40, command=lambda: self._change_month(-1)).pack(side="left", padx=10)
        self.month_label = ctk.CTkLabel(control_frame, text="", width=180, font=ctk.CTkFont(size=16, weight="bold"))
        self.month_label.pack(side="left", padx=5)
        ctk.CTkButton(control_frame, text=">", width=40, command=lambda: self._change_month(1)).pack(side="left", padx=10)

        ctk.CTkButton(
            control_frame,
            text="Generate Roster",
            command=self._generate_schedule,
            width=150
        ).pack(side="left", padx=20)

        ctk.CTkButton(
            control_frame,
            text="Save",
            command=self._save_schedule,
            width=100
        ).pack(side="left", padx=10)

        ctk.CTkButton(
            control_frame,
            text="Export",
            command=self._export_schedule,
            width=100
        ).pack(side="left", padx=10)

        content_frame = ctk.CTkFrame(self)
        content_frame.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        self.schedule_table = ScheduleTable(content_frame, self.scheduler)
        self.schedule_table.pack(side="left", fill="both", expand=True, padx=(0, 5))

        side_frame = ctk.CTkFrame(content_frame)
        side_frame.pack(side="right", fill="y", padx=(5, 0))

        self.statistics_panel = StatisticsPanel(side_frame, self.scheduler)
        self.statistics_panel.pack(fill="both", expand=True)

        self.solutions_panel = SolutionsPanel(side_frame, self._load_solution, self._delete_solution)
        self.solutions_panel.pack(fill="both", expand=True)

        self.status_var = ctk.StringVar(value="Ready")
        status_bar = ctk.CTkLabel(self, textvariable=self.status_var)
        status_bar.pack(side="bottom", fill="x", padx=10, pady=5)

    def _load_initial_data(self):
        last_used = self.data_manager.get_setting("lastUsedMonth")
        if last_used:
            try:
                year, month = map(int, last_used.split('-'))
                if 1 <= month <= 12:
                    self.current_year, self.current_month = year, month
            except ValueError:
                logger.warning(f"Ignoring malformed lastUsedMonth setting: {last_used}")
        self._refresh_month()
        self.status_var.set("Data loaded successfully")

    def _change_month(self, direction: int):
        month = self.current_month + direction
        year = self.current_year
        if month < 1:
            month, year = 12, year - 1
        elif month > 12:
            month, year = 1, year + 1
        self.current_year, self.current_month = year, month
        self.data_manager.set_setting("lastUsedMonth", f"{year}-{month:02d}")
        self._refresh_month()

    def _refresh_month(self):
        self.month_label.configure(text=f"{calendar.month_name[self.current_month]} {self.current_year}")
        self.schedule = None
        self.counter = None
        self.schedule_result = None
        self.schedule_table.show(None)
        self.statistics_panel.update_statistics(None)
        self._load_solutions_history()

    def _load_solutions_history(self):
        rosters = self.data_manager.list_rosters(self.current_year, self.current_month)
        self.solutions_panel.show(rosters)

    def _generate_schedule(self):
        """Generate a new solution on a background thread"""
        self.status_var.set("Generating roster...")
        self.update()

        year, month = self.current_year, self.current_month
        seed = random.randrange(2 ** 31) if self.data_manager.get_setting("useRandomSeed", True) else None

        threading.Thread(target=self._run_generation, args=(year, month, seed), daemon=True).start()

    def _run_generation(self, year: int, month: int, seed: Optional[int]):
        """Worker thread body; results go back to the Tk loop through after()"""
        try:
            result = self.scheduler.generate_schedule(year, month, seed=seed)
            self.after(0, self._update_after_generation, result)
        except SchedulerError as e:
            logger.error(f"Roster generation failed: {e}")
            # Format now: the exception name is unbound once the handler exits
            self.after(0, self.status_var.set, f"Error: {e}")

    def _update_after_generation(self, result: ScheduleResult):
        # Ignore a result that arrives after the user moved to another month
        if (result.schedule.year, result.schedule.month) != (self.current_year, self.current_month):
            return

        self.schedule = result.schedule
        self.counter = result.counter
        self.schedule_result = result
        self.schedule_table.show(result.schedule)
        self.statistics_panel.update_statistics(result.counter, result)
        self.status_var.set(f"Roster generated: {result.message}")

        if not result.success:
            failures = "\n".join(f"• {issue.description}" for issue in result.placement_failures[:5])
            messagebox.showerror("Roster Incomplete", f"{result.message}\n\n{failures}")
        elif result.unmet_guarantees:
            warnings = "\n".join(f"• {issue.description}" for issue in result.unmet_guarantees)
            messagebox.showwarning("Roster Generated With Warnings", f"{result.message}\n\n{warnings}")

    def _save_schedule(self):
        if self.schedule is None or self.counter is None:
            messagebox.showinfo("Nothing to Save", "No roster to save. Generate a solution first.")
            return

        try:
            seed = self.schedule_result.seed if self.schedule_result else None
            saved = self.data_manager.save_roster(
                self.current_year, self.current_month, self.schedule, self.counter, seed=seed
            )
            self.status_var.set(f"Solution {saved.solution_number} saved")
            messagebox.showinfo("Saved", f"Solution {saved.solution_number} saved!")
            self._load_solutions_history()
        except DataManagerError as e:
            logger.error(f"Error saving roster: {e}")
            messagebox.showerror("Save Failed", f"Error while saving: {e}")

    def _load_solution(self, roster_id: int):
        try:
            saved = self.data_manager.get_roster(roster_id)
        except DataManagerError as e:
            messagebox.showerror("Load Failed", f"Error while loading: {e}")
            return

        self.schedule = saved.schedule
        self.counter = saved.counter
        self.schedule_result = None
        self.schedule_table.show(saved.schedule)
        self.statistics_panel.update_statistics(saved.counter)
        self.status_var.set(f"Solution {saved.solution_number} loaded")

    def _delete_solution(self, roster_id: int):
        if not messagebox.askyesno("Delete Solution", "Are you sure you want to delete this solution?"):
            return

        try:
            if self.data_manager.delete_roster(roster_id):
                self.status_var.set("Solution deleted")
            else:
                messagebox.showerror("Delete Failed", "The solution no longer exists.")
        except DataManagerError as e:
            messagebox.showerror("Delete Failed", f"Error while deleting: {e}")
        self._load_solutions_history()

    def _export_schedule(self):
        """Export the displayed roster to PDF, Excel, CSV or JPEG"""
        if self.schedule is None or self.counter is None:
            messagebox.showinfo("Nothing to Export", "No roster to export. Generate or load a solution first.")
            return

        output_path = filedialog.asksaveasfilename(
            initialfile=self.export_manager.get_default_filename(self.current_year, self.current_month, "jpeg"),
            defaultextension=".jpg",
            filetypes=[
                ("JPEG images", "*.jpg"),
                ("PDF files", "*.pdf"),
                ("Excel files", "*.xlsx"),
                ("CSV files", "*.csv"),
            ],
            title="Export Roster"
        )

        if not output_path:
            return  # User cancelled

        extension = output_path.split('.')[-1].lower()
        format_type = {"xlsx": "excel", "csv": "csv", "pdf": "pdf"}.get(extension, "jpeg")

        success = self.export_manager.export_calendar(
            self.schedule, self.counter, format_type, output_path, self.schedule_result
        )

        if success:
            messagebox.showinfo("Export Successful", f"Roster exported successfully to:\n{output_path}")
        else:
            messagebox.showerror("Export Failed", "Failed to export roster. Please check the file path and try again.")


def main():
    """Main entry point for the UI"""
    data_manager = DataManager()
    scheduler = ShiftScheduler(data_manager.get_roster_config())
    app = MainWindow(data_manager=data_manager, scheduler=scheduler)
    app.mainloop()


if __name__ == "__main__":
    main()
