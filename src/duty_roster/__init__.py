"""
Duty Roster Planning for Two-Department Reception Shifts

A desktop application that generates monthly duty rosters: every weekday's
shifts are filled fairly from two departments, with a restricted worker,
an anchor guarantee and a minimum of one shift for everyone, plus saved
solutions and PDF, Excel, CSV and image exports.
"""

__version__ = "1.0.0"
__author__ = "Duty Roster Team"
