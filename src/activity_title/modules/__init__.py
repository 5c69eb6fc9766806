"""
Modules package for activity-title.

Modules are plug-ins that add behavior on top of the Event Bus.
"""

from activity_title.modules.base import HostModule

__all__ = ["HostModule"]
