"""checkitall - admission gate for directory trees.

Submits files to a remote content-analysis service and fails the run
when the configured policy rejects any of them.
"""

__version__ = "0.1.0"
