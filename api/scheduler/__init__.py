"""
Background jobs for the portal.

One SchedulerService is built in the app lifespan; features register
their periodic jobs on it.
"""
from scheduler.service import SchedulerService
from scheduler.jobs import register_reconciliation_job

__all__ = ['SchedulerService', 'register_reconciliation_job']
