# Celery instance is defined in tto_project/celery.py
# It points the worker at the Django settings module
from .celery import celery_app

__all__ = ("celery_app",)

""" Run workers with "celery -A tto_project worker -l info" """
