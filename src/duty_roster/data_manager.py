"""
Data Manager for Duty Roster Planning

Handles JSON persistence of the roster configuration, application settings
and saved roster solutions (one schedule plus its shift counts, numbered per
month).
"""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any
from dataclasses import dataclass
from pathlib import Path

from .roster_model import MonthSchedule, RosterConfig, default_roster_config
from .shift_counter import ShiftCounter


class DataManagerError(Exception):
    """Base exception for DataManager operations"""
    pass


class DataFileCorruptedError(DataManagerError):
    """Raised when the data file is corrupted"""
    pass


class DataFileNotFoundError(DataManagerError):
    """Raised when the data file is not found"""
    pass


class DataSaveError(DataManagerError):
    """Raised when saving data fails"""
    pass


class DataValidationError(DataManagerError):
    """Raised when data validation fails"""
    pass


class RosterNotFoundError(DataManagerError):
    """Raised when a saved roster id does not exist"""
    pass


@dataclass
class SavedRoster:
    """Immutable snapshot of one generated month"""
    id: int
    year: int
    month: int
    solution_number: int
    created_at: str
    schedule: MonthSchedule
    counter: ShiftCounter
    seed: Optional[int] = None

    @property
    def month_key(self) -> str:
        return f"{self.year}-{self.month:02d}"

    def to_summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "year": self.year,
            "month": self.month,
            "solution_number": self.solution_number,
            "created_at": self.created_at,
            "seed": self.seed
        }


class DataManager:
    """Manages all data persistence and CRUD operations"""

    REQUIRED_SECTIONS = ["settings", "roster", "saved_rosters"]

    def __init__(self, data_file: str = "data/roster_data.json"):
        if data_file == "data/roster_data.json":
            # Use path relative to the package directory
            data_file = Path(__file__).parent.parent / "data" / "roster_data.json"
        self.data_file = Path(data_file)
        self.data = self._load_or_create_data()

    def _load_or_create_data(self) -> Dict[str, Any]:
        """Load existing data or create default structure with recovery from backup"""
        backup_file = self.data_file.with_suffix('.bak')
        if self.data_file.exists():
            try:
                with open(self.data_file, 'r', encoding='utf-8') as f:
                    return self._validate_and_migrate_data(json.load(f))
            except (ValueError, IOError) as e:
                logging.error(f"Error loading main data file {self.data_file}: {e}")
                if not backup_file.exists():
                    raise DataFileCorruptedError(f"Main data file corrupted and no backup available: {e}")
                return self._recover_from_backup(backup_file)
        elif backup_file.exists():
            logging.info(f"Main data file missing, attempting recovery from backup {backup_file}")
            return self._recover_from_backup(backup_file)
        else:
            logging.info("No data file found, creating default data")
            return self._create_default_data()

    def _recover_from_backup(self, backup_file: Path) -> Dict[str, Any]:
        try:
            with open(backup_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            backup_file.replace(self.data_file)
            logging.info("Successfully recovered data from backup")
            return self._validate_and_migrate_data(data)
        except (ValueError, IOError) as backup_e:
            logging.error(f"Backup file also corrupted: {backup_e}")
            logging.info("Creating default data due to corrupted files")
            return self._create_default_data()

    def _validate_and_migrate_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and migrate data structure to current version"""
        if not isinstance(data, dict):
            raise ValueError("Top-level JSON value is not an object")

        default_data = self._create_default_data()
        for key in default_data:
            if key not in data or data[key] is None:
                data[key] = default_data[key]
        for key, value in default_data["settings"].items():
            data["settings"].setdefault(key, value)

        return data

    def _create_default_data(self) -> Dict[str, Any]:
        """Create default data structure with the standard roster"""
        return {
            "settings": {
                "appVersion": "1.0.0",
                "lastUsedMonth": datetime.now().strftime("%Y-%m"),
                "dataFile": str(self.data_file),
                "useRandomSeed": True
            },
            "roster": default_roster_config().to_dict(),
            "saved_rosters": []  # [{id, year, month, solution_number, created_at, schedule, statistics}]
        }

    def _validate_saved_data(self) -> bool:
        """Validate that the saved data file matches current data"""
        try:
            if not self.data_file.exists():
                raise DataFileNotFoundError(f"Saved data file {self.data_file} does not exist")

            with open(self.data_file, 'r', encoding='utf-8') as f:
                saved_data = json.load(f)

            for key in self.REQUIRED_SECTIONS:
                if key not in saved_data:
                    raise DataValidationError(f"Required section '{key}' missing from saved data")

            if saved_data.get("settings", {}).get("appVersion") != self.data.get("settings", {}).get("appVersion"):
                raise DataValidationError("App version mismatch in saved data")

            return True

        except (json.JSONDecodeError, IOError) as e:
            raise DataValidationError(f"Failed to validate saved data: {e}")

    def save_data(self) -> bool:
        """Save current data to file atomically with validation"""
        temp_file = None
        backup_file = self.data_file.with_suffix('.bak')

        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)

            if self.data_file.exists():
                self.data_file.replace(backup_file)

            # Write to temporary file first, then rename into place
            temp_file = self.data_file.with_suffix('.tmp')
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.data_file)

            self._validate_saved_data()
            return True

        except DataValidationError as e:
            logging.error(f"Data validation failed after save: {e}", exc_info=True)
            if backup_file.exists():
                try:
                    backup_file.replace(self.data_file)
                except OSError as restore_e:
                    logging.error(f"Failed to restore from backup: {restore_e}", exc_info=True)
            raise DataSaveError(f"Save operation failed validation: {e}")

        except (IOError, OSError) as e:
            logging.error(f"I/O error during save operation: {e}", exc_info=True)
            raise DataSaveError(f"Failed to save data due to I/O error: {e}")

        except (TypeError, ValueError) as e:
            logging.error(f"Unexpected error during save operation: {e}", exc_info=True)
            raise DataSaveError(f"Unexpected error during save: {e}")

        finally:
            if temp_file and temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError as cleanup_e:
                    logging.error(f"Failed to clean up temporary file {temp_file}: {cleanup_e}", exc_info=True)

    # Roster Configuration
    def get_roster_config(self) -> RosterConfig:
        """Get the configured employees, shifts and rules"""
        return RosterConfig.from_dict(self.data.get("roster", {}))

    def set_roster_config(self, config: RosterConfig):
        """Replace the roster configuration after validating it"""
        config.validate()
        self.data["roster"] = config.to_dict()

    # Saved Rosters
    def save_roster(self, year: int, month: int, schedule: MonthSchedule,
                    counter: ShiftCounter, seed: Optional[int] = None) -> SavedRoster:
        """Store a generated month as the next solution for that month"""
        records = self.data.setdefault("saved_rosters", [])
        next_id = max((r["id"] for r in records), default=0) + 1
        solution_number = max(
            (r["solution_number"] for r in records if r["year"] == year and r["month"] == month),
            default=0
        ) + 1

        config = self.get_roster_config()
        statistics = [
            {
                "employee_id": emp_id,
                "name": config.name_of(emp_id),
                "total": entry["total"],
                "breakdown": {str(k): v for k, v in entry["shifts"].items()}
            }
            for emp_id, entry in counter.snapshot().items()
        ]

        record = {
            "id": next_id,
            "year": year,
            "month": month,
            "solution_number": solution_number,
            "created_at": datetime.now().isoformat(),
            "seed": seed,
            "schedule": schedule.to_dict(),
            "statistics": statistics
        }
        records.append(record)
        self.save_data()

        logging.info(f"Saved roster {next_id} as solution {solution_number} for {year}-{month:02d}")
        return self._record_to_roster(record)

    def list_rosters(self, year: int, month: int) -> List[SavedRoster]:
        """Saved solutions for one month, ordered by solution number"""
        records = [
            r for r in self.data.get("saved_rosters", [])
            if r["year"] == year and r["month"] == month
        ]
        return [self._record_to_roster(r) for r in sorted(records, key=lambda r: r["solution_number"])]

    def get_roster(self, roster_id: int) -> SavedRoster:
        """Reload a saved solution with its schedule and counts"""
        return self._record_to_roster(self._find_record(roster_id))

    def get_roster_statistics(self, roster_id: int) -> List[Dict[str, Any]]:
        return [dict(stat) for stat in self._find_record(roster_id).get("statistics", [])]

    def delete_roster(self, roster_id: int) -> bool:
        """Delete a saved solution; returns False when it does not exist"""
        records = self.data.get("saved_rosters", [])
        for record in records:
            if record["id"] == roster_id:
                records.remove(record)
                self.save_data()
                logging.info(f"Deleted saved roster {roster_id}")
                return True
        return False

    def _find_record(self, roster_id: int) -> Dict[str, Any]:
        for record in self.data.get("saved_rosters", []):
            if record["id"] == roster_id:
                return record
        raise RosterNotFoundError(f"No saved roster with id {roster_id}")

    def _record_to_roster(self, record: Dict[str, Any]) -> SavedRoster:
        snapshot = {
            stat["employee_id"]: {"total": stat["total"], "shifts": stat["breakdown"]}
            for stat in record.get("statistics", [])
        }
        return SavedRoster(
            id=record["id"],
            year=record["year"],
            month=record["month"],
            solution_number=record["solution_number"],
            created_at=record["created_at"],
            schedule=MonthSchedule.from_dict(record["year"], record["month"], record["schedule"]),
            counter=ShiftCounter.from_snapshot(snapshot),
            seed=record.get("seed")
        )

    # Settings Management
    def get_setting(self, key: str, default=None):
        """Get application setting"""
        return self.data.get("settings", {}).get(key, default)

    def set_setting(self, key: str, value):
        """Set application setting"""
        self.data.setdefault("settings", {})[key] = value
