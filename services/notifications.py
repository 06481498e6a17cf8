from models import db, Notification
from utils.logger import logger


def notify_merchant(order, message):
    note = Notification(
        merchant_id=order.merchant_id,
        delivery_person_id=order.delivery_person_id,
        order_id=order.id,
        message=message,
    )
    db.session.add(note)
    logger.info("Notify merchant %s: %s", order.merchant_id, message)
    return note
