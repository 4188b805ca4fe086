"""
HockeyHub Medical Data Layer
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Injury, treatment, availability and document records for the medical service.

:copyright: (c) 2024-present HockeyHub"""

__title__ = 'hockeyhub_medical'
__author__ = 'HockeyHub'
__license__ = 'None'
__version__ = '0.3.0'
__copyright__ = 'Copyright 2024-present HockeyHub'
