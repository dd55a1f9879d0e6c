"""
Celery Tasks
Background export of confirmed orders to the reconciliation workbook.
"""

import time
from datetime import datetime
from typing import Any

from kombu.exceptions import OperationalError

from app.celery_worker import celery_app
from app.core.config import get_logger
from app.core.exceptions import NotFoundError
from app.services.excel_manager import ExcelManager

logger = get_logger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_order_to_excel(self, order_data: dict) -> dict:
    """
    Export a confirmed order to the Excel workbook.
    This task runs asynchronously via Celery worker.

    Args:
        order_data: Order serialized with model_dump(mode="json")

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_id = order_data.get('id', 'unknown')

    logger.info(f"Task {task_id}: Processing order {order_id}")
    start_time = time.time()

    try:
        result = ExcelManager().export_order(order_data)
    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        logger.error(f"Task {task_id}: Order {order_id} error after {elapsed}s - {e}")
        # Celery retries based on the task options
        raise

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed
    logger.info(f"Task {task_id}: Order {order_id} completed in {elapsed}s")
    return result


@celery_app.task(
    bind=True,
    max_retries=5,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def update_order_status_in_excel(self, order_id: str, status: str) -> dict:
    """
    Carry a status change over to the workbook row.

    The export of the order may still be queued, so a missing row is
    retried like any other failure.
    """
    if not ExcelManager().update_status(order_id, status):
        raise NotFoundError(f"Order {order_id} has no workbook row yet")

    logger.info(f"Task {self.request.id}: Order {order_id} -> {status}")
    return {
        'success': True,
        'order_id': order_id,
        'status': status,
    }


@celery_app.task
def clear_excel_file() -> dict:
    """
    Clear the Excel workbook (start of a new reconciliation period).
    """
    removed = ExcelManager().clear_all()
    return {
        'success': True,
        'message': 'Excel file cleared' if removed else 'Nothing to clear',
        'timestamp': datetime.now().isoformat()
    }


def queue_order_export(order_data: dict[str, Any]) -> bool:
    """
    Hand an order to the export worker.

    The order is already stored when this runs, so a broker outage only
    costs the workbook row; it is logged and the caller carries on.
    """
    try:
        export_order_to_excel.delay(order_data)
    except OperationalError as e:
        logger.error(f"Could not queue export for order {order_data.get('id')}: {e}")
        return False
    return True


def queue_status_update(order_id: str, status: str) -> bool:
    """Hand a status change to the export worker; same outage rule as above."""
    try:
        update_order_status_in_excel.delay(order_id, status)
    except OperationalError as e:
        logger.error(f"Could not queue status {status} for order {order_id}: {e}")
        return False
    return True
