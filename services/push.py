import json

from flask import current_app
from pywebpush import webpush, WebPushException

from models import db, PushSubscription
from utils.logger import logger


def register_subscription(delivery_person, subscription):
    endpoint = subscription.get("endpoint")
    keys = subscription.get("keys") or {}
    if not endpoint or not keys.get("p256dh") or not keys.get("auth"):
        return None

    row = PushSubscription.query.filter_by(endpoint=endpoint).first()
    if row:
        row.delivery_person_id = delivery_person.id
        row.keys = keys
    else:
        row = PushSubscription(delivery_person_id=delivery_person.id, endpoint=endpoint, keys=keys)
        db.session.add(row)
    db.session.commit()
    logger.info("Push subscription saved for delivery person %s", delivery_person.id)
    return row


def send_push(subscription, title="New Order", body="You have a new order", url="/"):
    private_key = current_app.config.get("VAPID_PRIVATE_KEY")
    if not private_key:
        logger.debug("VAPID keys not configured, push skipped")
        return False

    payload = json.dumps({
        "title": title,
        "body": body,
        "url": url
    })

    try:
        webpush(
            subscription_info=subscription.subscription_info(),
            data=payload,
            vapid_private_key=private_key,
            vapid_claims={"sub": current_app.config["VAPID_SUBJECT"]}
        )
        logger.info("Push sent to %s", subscription.endpoint[:40])
        return True
    except WebPushException as e:
        logger.warning("Push failed: %s", e)
        # subscription gone on the browser side
        if e.response is not None and e.response.status_code in (404, 410):
            db.session.delete(subscription)
            db.session.commit()
        return False


def notify_delivery_person(delivery_person, title, body, url="/agent/delivery"):
    sent = 0
    for subscription in list(delivery_person.push_subscriptions):
        if send_push(subscription, title=title, body=body, url=url):
            sent += 1
    return sent
