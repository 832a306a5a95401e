"""Celery tasks for background processing."""
import logging
from typing import Iterable, List

from celery_app import celery_app
from database import db_session_scope
from repositories import ProductRepository
from repositories.product_repository import unique_in_order

logger = logging.getLogger(__name__)

@celery_app.task(bind=True, name='orders.record_product_sales', max_retries=3, default_retry_delay=30)
def record_product_sales(self, product_ids: List[int]):
    """Stamp products sold by a paid order so catalog consumers see fresh data."""
    ids = unique_in_order(int(product_id) for product_id in product_ids)
    if not ids:
        return {'status': 'completed', 'updated': 0}

    try:
        with db_session_scope() as session:
            updated = ProductRepository(session).touch(ids)
    except Exception as e:
        logger.error(f"Failed to record sales for products {ids}: {e}")
        raise self.retry(exc=e)

    logger.info(f"Recorded sales for {updated} of {len(ids)} products")
    return {'status': 'completed', 'updated': updated}

def notify_product_sales(product_ids: Iterable[int]):
    """Queue ``record_product_sales``; raises when the broker is unreachable."""
    ids = list(product_ids)
    result = record_product_sales.delay(ids)
    logger.debug(f"Queued sales notification {result.id} for products {ids}")
    return result
