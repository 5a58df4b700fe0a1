import re
from typing import List, Dict, Any, Optional, Tuple, Union

from pydantic import ValidationError

from longtrip.models.trip_models import Trip
from longtrip.utils.errors import TripValidationError

class TripValidator:
    """Validator for trips entering the long trip planner"""

    @staticmethod
    def validate_destination(destination: Optional[str]) -> bool:
        """Validate destination name (allow common punctuation like commas)."""
        if not destination or len(destination.strip()) < 2:
            return False
        # Letters in any script, digits, spaces and punctuation seen in place names
        # e.g., "Paris, France", "St. John's", "São Paulo", "Ho Chi Minh City"
        pattern = r"^[\w\s\-\'\.,&()/]+$"
        return re.match(pattern, destination.strip()) is not None

    @staticmethod
    def validate_duration(duration: int, max_days: int) -> Dict[str, Any]:
        errors = []

        if duration < 1:
            errors.append("Trip must be at least 1 day long")
        if duration > max_days:
            errors.append(f"Trip duration cannot exceed {max_days} days")

        return {
            'valid': len(errors) == 0,
            'errors': errors
        }

    @staticmethod
    def validate_complete_trip(trip: Trip, max_days: int = 60) -> Dict[str, Any]:
        """Validate a trip that has already passed model validation"""
        all_errors = []
        warnings = []

        if not TripValidator.validate_destination(trip.destination.name):
            all_errors.append("Invalid destination")

        duration_validation = TripValidator.validate_duration(trip.duration, max_days)
        all_errors.extend(duration_validation['errors'])

        if trip.budget and trip.budget.total == 0:
            warnings.append("Budget is zero; cost estimates will not be tracked against it")
        if trip.duration >= 30 and trip.preferences.pace.value == "intense":
            warnings.append("Intense pace over a month-long trip leaves little room for rest days")

        return {
            'valid': len(all_errors) == 0,
            'errors': all_errors,
            'warnings': warnings
        }

    @staticmethod
    def coerce_trip(data: Union[Trip, Dict[str, Any]]) -> Trip:
        """Build a Trip from a dict, turning pydantic errors into a TripValidationError"""
        if isinstance(data, Trip):
            return data
        if not isinstance(data, dict):
            raise TripValidationError("Trip must be an object", [f"Got {type(data).__name__}"])
        try:
            return Trip.model_validate(data)
        except ValidationError as e:
            raise TripValidationError("Invalid trip", TripValidator.format_errors(e)) from e

    @staticmethod
    def format_errors(error: ValidationError) -> List[str]:
        messages = []
        for item in error.errors():
            location = ".".join(str(part) for part in item.get("loc", ()))
            messages.append(f"{location}: {item.get('msg')}" if location else item.get("msg", "invalid"))
        return messages

    @staticmethod
    def check(data: Union[Trip, Dict[str, Any]], max_days: int = 60) -> Tuple[Trip, List[str]]:
        """Coerce and validate a trip; returns it with any non-fatal warnings"""
        trip = TripValidator.coerce_trip(data)
        result = TripValidator.validate_complete_trip(trip, max_days)
        if not result['valid']:
            raise TripValidationError("Invalid trip", result['errors'])
        return trip, result['warnings']

    @staticmethod
    def ensure_valid(data: Union[Trip, Dict[str, Any]], max_days: int = 60) -> Trip:
        """Coerce and validate a trip, raising TripValidationError on any problem"""
        return TripValidator.check(data, max_days)[0]
