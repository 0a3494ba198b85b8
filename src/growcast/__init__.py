"""Growth forecasting for an aquaponic farm.

Predicts trout length and lettuce height and leaf area from sensor
measurements and their environment (water and air conditions).

Subpackages:
- growcast.core: Configuration, errors and the sensor API client
- growcast.data: Daily series, aggregation and measurement sources
- growcast.forecast: Trend, saturation and seasonal models plus the facade
"""

# Re-export common items for convenience
from growcast.core import configure_logging, settings
from growcast.subjects import Metric, Subject
from growcast.forecast import PredictionFacade, build_facade

__all__ = [
    "settings",
    "configure_logging",
    "Subject",
    "Metric",
    "PredictionFacade",
    "build_facade",
]

__version__ = "0.1.0"
