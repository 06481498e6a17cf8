import logging
import time

from rider.client import DeliveryClientError

logger = logging.getLogger("paps.rider")


class DeliveryAgent:
    """Sends rider actions now when online, queues them when not."""

    def __init__(self, client, queue, sleep=time.sleep):
        self.client = client
        self.queue = queue
        self._sleep = sleep

    def accept(self, order_id):
        return self._send("accept", {"orderId": order_id}, lambda: self.client.accept(order_id))

    def update_status(self, order_id, status):
        return self._send(
            "status",
            {"orderId": order_id, "status": status},
            lambda: self.client.update_status(order_id, status),
        )

    def _send(self, action_type, payload, call):
        if self.client.is_reachable():
            try:
                return call()
            except DeliveryClientError as exc:
                # server answered with an error: not an offline case
                if exc.status is not None:
                    raise
                logger.warning("Send failed, queuing %s: %s", action_type, exc)
        self.queue.enqueue(action_type, payload)
        return None

    def sync(self):
        if not len(self.queue) or not self.client.is_reachable():
            return 0
        return self.queue.process(self.client)

    def poll(self, interval=30, iterations=None):
        """Flush the queue every ``interval`` seconds; forever when iterations is None."""
        done = 0
        sent = 0
        while iterations is None or done < iterations:
            sent += self.sync()
            done += 1
            if iterations is None or done < iterations:
                self._sleep(interval)
        return sent
