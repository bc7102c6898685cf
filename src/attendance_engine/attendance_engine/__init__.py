"""Attendance engine package.

Feature modules (sessions, challenges, attendance, od_requests, schedules) each carry
a model, a repository protocol with a MySQL implementation, a service and a thin Flask
controller. Wiring lives in ``container.py``.
"""
