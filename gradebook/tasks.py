"""
Celery tasks for gradebook app.
Handles batch result calculation and publishing for whole classes.
"""
import logging

from celery import shared_task
from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError

from . import config
from .services import calculate_class_results, publish_results, withdraw_results


logger = logging.getLogger(__name__)


def _get_class(class_id):
    from academics.models import Class

    try:
        return Class.objects.get(pk=class_id)
    except Class.DoesNotExist:
        logger.error(f"Class {class_id} not found")
        return None


@shared_task(
    bind=True,
    max_retries=config.TASK_MAX_RETRIES,
    default_retry_delay=config.TASK_RETRY_DELAY,
)
def calculate_class_results_task(self, class_id):
    """
    Calculate results for a class and return a status breakdown.

    Args:
        class_id: ID of the Class

    Retries on transient database errors.
    """
    class_obj = _get_class(class_id)
    if class_obj is None:
        return {'success': False, 'error': 'Class not found'}

    try:
        results = calculate_class_results(class_obj)
    except ImproperlyConfigured as e:
        # Non-retryable - the school must fix its settings first
        logger.error(f"Cannot calculate results for {class_obj.name}: {e}")
        return {'success': False, 'error': str(e)}
    except DatabaseError as e:
        logger.warning(f"Database error calculating results for {class_obj.name}, retrying: {e}")
        raise self.retry(exc=e)

    statuses = {}
    for _, outcome in results:
        status = outcome.result.status.value
        statuses[status] = statuses.get(status, 0) + 1

    return {
        'success': True,
        'class': class_obj.name,
        'students': len(results.students),
        'statuses': statuses,
        'decisions_granted': len(results.decision_log()),
    }


@shared_task(
    bind=True,
    max_retries=config.TASK_MAX_RETRIES,
    default_retry_delay=config.TASK_RETRY_DELAY,
)
def publish_class_results_task(self, class_id, result_key):
    """
    Publish one result column for every student in a class.

    Args:
        class_id: ID of the Class
        result_key: One of core.choices.ResultKey values
    """
    class_obj = _get_class(class_id)
    if class_obj is None:
        return {'success': False, 'error': 'Class not found'}

    try:
        published = publish_results(class_obj, result_key)
    except (ImproperlyConfigured, ValueError) as e:
        logger.error(f"Cannot publish {result_key} for {class_obj.name}: {e}")
        return {'success': False, 'error': str(e)}
    except DatabaseError as e:
        logger.warning(f"Database error publishing {result_key} for {class_obj.name}, retrying: {e}")
        raise self.retry(exc=e)

    return {
        'success': True,
        'class': class_obj.name,
        'result_key': result_key,
        'published': published,
    }


@shared_task
def withdraw_class_results_task(class_id, result_key):
    """Withdraw a published result column for a class."""
    class_obj = _get_class(class_id)
    if class_obj is None:
        return {'success': False, 'error': 'Class not found'}

    try:
        withdrawn = withdraw_results(class_obj, result_key)
    except ValueError as e:
        return {'success': False, 'error': str(e)}

    return {
        'success': True,
        'class': class_obj.name,
        'result_key': result_key,
        'withdrawn': withdrawn,
    }
