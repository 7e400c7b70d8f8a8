"""
Resource Classifier
===================

Pure rules that turn resource records into DELETE/REVIEW/KEEP/IGNORE
verdicts with estimated monthly costs.

Example
-------
>>> from cloud_sweeper.classifier import Classifier
>>>
>>> classified = Classifier(config).classify_all(scan_result.records)
"""

from cloud_sweeper.classifier.costs import CostEstimate, estimate_cost
from cloud_sweeper.classifier.rules import TERMINAL_STATES, Classifier, classify

__all__ = [
    "Classifier",
    "classify",
    "TERMINAL_STATES",
    "CostEstimate",
    "estimate_cost",
]
