"""Convenience entry point for running the refund Celery worker.

Most deployments will invoke the standard Celery CLI
(``celery -A infrastructure.tasks worker -Q payments,default``), but keeping
a small script makes local testing or Procfile-style runners straightforward.
"""
from __future__ import annotations

from core.logging_config import configure_logging
from .config.celery import celery_app


def main() -> None:
    configure_logging()
    celery_app.worker_main(
        argv=["worker", "--hostname=worker@%h", "--queues=payments,default", "--loglevel=INFO"],
    )


if __name__ == "__main__":
    main()
