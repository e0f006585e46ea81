"""
Main Entry Point for Duty Roster Planning

Wires persistence, the roster generator, exports and the GUI together and
sets up logging and the global exception hook.
"""

import sys
import logging
import traceback
from pathlib import Path
from datetime import datetime
from tkinter import messagebox, TclError

from .data_manager import DataManager, DataManagerError
from .roster_model import SchedulerError
from .scheduler_logic import ShiftScheduler
from .reporting import ExportManager


def setup_logging():
    """Setup application logging"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / f"duty_roster_{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger(__name__)


def check_dependencies():
    """Check if all required dependencies are available"""
    required_modules = [
        'customtkinter',
        'pandas',
        'openpyxl',
        'reportlab',
        'PIL'  # Pillow
    ]

    missing_modules = []

    for module in required_modules:
        try:
            __import__(module)
        except ImportError:
            missing_modules.append(module)

    if missing_modules:
        raise ImportError(
            f"Missing required dependencies: {', '.join(missing_modules)}\n"
            "Please install them using: pip install -e ."
        )


def resolve_data_file() -> Path:
    """Location of the roster store, next to the executable when frozen"""
    if getattr(sys, 'frozen', False):
        base_path = Path(sys.executable).parent
    else:
        base_path = Path(__file__).parent.parent

    data_dir = base_path / "data"
    data_dir.mkdir(exist_ok=True)
    return data_dir / "roster_data.json"


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )

    # Show error dialog if a display is available
    try:
        messagebox.showerror(
            "Application Error",
            f"An unexpected error occurred:\n\n{exc_type.__name__}: {exc_value}"
        )
    except TclError:
        logger.warning("No display available for the error dialog")


class DutyRosterApp:
    """Main application class"""

    def __init__(self, data_file: Path = None):
        self.logger = logging.getLogger(__name__)
        self.data_file = data_file
        self.data_manager = None
        self.scheduler = None
        self.export_manager = None
        self.main_window = None

    def initialize(self) -> bool:
        """Initialize application components"""
        try:
            self.logger.info("Initializing Duty Roster Application")

            check_dependencies()
            self.logger.info("All dependencies available")

            data_file = self.data_file or resolve_data_file()
            self.data_manager = DataManager(str(data_file))
            self.logger.info(f"Data manager initialized with {data_file}")

            config = self.data_manager.get_roster_config()
            self.scheduler = ShiftScheduler(config)
            self.logger.info(
                f"Scheduler initialized with {len(config.employee_ids())} employees and {len(config.shifts)} shifts"
            )

            self.export_manager = ExportManager(config)
            self.logger.info("Export manager initialized")

            return True

        except (ImportError, DataManagerError, SchedulerError, OSError) as e:
            self.logger.error(f"Failed to initialize application: {e}")
            self.logger.error(traceback.format_exc())
            return False

    def run(self) -> bool:
        """Run the main application"""
        try:
            if not self.initialize():
                self.show_initialization_error()
                return False

            self.logger.info("Starting GUI application")

            # Imported here so the engine can start without a display
            from .ui import MainWindow
            self.main_window = MainWindow(
                data_manager=self.data_manager,
                scheduler=self.scheduler,
                export_manager=self.export_manager
            )
            self.main_window.mainloop()

            self.logger.info("Application closed normally")
            return True

        except (TclError, SchedulerError, DataManagerError) as e:
            self.logger.error(f"Application error: {e}")
            self.logger.error(traceback.format_exc())
            self.show_runtime_error(e)
            return False

        finally:
            self.cleanup()

    def show_initialization_error(self):
        """Show initialization error dialog"""
        try:
            import tkinter as tk
            root = tk.Tk()
            root.withdraw()

            error_msg = """
Failed to initialize Duty Roster Application.

Please check:
1. All required dependencies are installed
2. You have write permissions in the application directory
3. The roster configuration in the data file is valid
4. The logs directory for detailed error information
            """
            messagebox.showerror("Initialization Error", error_msg.strip())
            root.destroy()

        except TclError as e:
            print(f"Failed to show initialization error: {e}")

    def show_runtime_error(self, error):
        """Show runtime error dialog"""
        try:
            messagebox.showerror(
                "Runtime Error",
                f"An error occurred while running the application:\n\n"
                f"{type(error).__name__}: {error}\n\n"
                "The application will now close. Please check the log files\n"
                "for more detailed information."
            )
        except TclError as e:
            print(f"Failed to show runtime error: {e}")

    def cleanup(self):
        """Persist settings such as the last viewed month"""
        if not self.data_manager:
            return
        try:
            self.data_manager.save_data()
            self.logger.info("Data saved successfully")
        except DataManagerError as e:
            self.logger.error(f"Error during cleanup: {e}")


def main():
    """Main entry point"""
    sys.excepthook = handle_exception

    logger = setup_logging()
    logger.info("=" * 50)
    logger.info("Starting Duty Roster Application")
    logger.info("=" * 50)

    app = DutyRosterApp()
    success = app.run()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
