#!/usr/bin/env python3
"""
Celery Worker Entry Point
Run with: celery -A celery_worker.celery worker --loglevel=info
Beat (sweeps and reminder scan): celery -A celery_worker.celery beat --loglevel=info
Or: python celery_worker.py
"""
from telehealth import create_app
from telehealth.extensions import celery

# Create Flask app to initialize Celery
app = create_app()

# Import tasks so Celery can discover them
from tasks import notification_tasks, payment_tasks, reminder_tasks  # noqa: E402,F401

if __name__ == '__main__':
    # For development: run worker with embedded beat
    celery.worker_main([
        'worker',
        '--beat',
        '--loglevel=info',
        '--concurrency=4'
    ])
