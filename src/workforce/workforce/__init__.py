"""Workforce package.

Feature modules (rbac, time_entries, timer, timesheets, schedules, ...) follow the same
layout: frozen dataclass models, Protocol repositories with MySQL adapters, services holding
the business rules, and a thin Flask controller on top.
"""
