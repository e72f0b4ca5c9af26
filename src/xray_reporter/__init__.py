"""
Xray reporter - pytest plugin exporting test results to Xray (Jira).
"""

from xray_reporter.datasets import dataset_params
from xray_reporter.plugin import XrayReporter

__version__ = "0.1.0"

__all__ = ["XrayReporter", "dataset_params", "__version__"]
