"""
Ghost Viewer - Infrastructure state explorer and orphaned resource hunter.

This package reads SST/Pulumi deployment state, organizes it into navigable
resource trees, and finds AWS resources tagged for an app/stage that are
no longer tracked by the state file.
"""

__version__ = "0.1.0"
__author__ = "Ghost Viewer"
