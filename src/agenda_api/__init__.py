"""
Agenda backend package.

Agenda items with due dates and reminders, persisted as one key-value record,
with a polling reminder scheduler and list/calendar projections served over
FastAPI. Build an application with ``agenda_api.main.create_app``.
"""
