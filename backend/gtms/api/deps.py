"""Shared route dependencies: objects built once in the lifespan and kept on app.state."""
from fastapi import Request

from gtms.config import NotificationConfig, build_notification_config
from gtms.scheduler.runner import TaskRunner, task_runner
from gtms.services.notifier import Notifier


def get_config(request: Request) -> NotificationConfig:
    config = getattr(request.app.state, "notification_config", None)
    return config if config is not None else build_notification_config()


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_task_runner(request: Request) -> TaskRunner:
    return getattr(request.app.state, "task_runner", None) or task_runner
