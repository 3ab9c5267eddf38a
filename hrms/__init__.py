"""
HRMS leave and attendance backend
"""
