import json
import logging
import os

from rider.client import DeliveryClientError

logger = logging.getLogger("paps.rider")

ACTION_TYPES = ("accept", "status")


class OfflineActionQueue:
    """Rider actions stored in a JSON file until the server is reachable again.

    Each entry is ``{"type": "accept" | "status", "payload": {...}}``.
    """

    def __init__(self, path):
        self.path = path

    @classmethod
    def for_rider(cls, rider_id, directory="."):
        return cls(os.path.join(directory, f"delivery_queue_{rider_id}.json"))

    def read(self):
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable queue %s: %s", self.path, exc)
            return []
        return data if isinstance(data, list) else []

    def write(self, actions):
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        tmp = f"{self.path}.tmp"
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(actions, fh)
        os.replace(tmp, self.path)

    def clear(self):
        self.write([])

    def enqueue(self, action_type, payload):
        if action_type not in ACTION_TYPES:
            raise ValueError(f"Unknown action type: {action_type}")
        actions = self.read()
        actions.append({"type": action_type, "payload": payload})
        self.write(actions)
        logger.info("Queued %s %s (%d pending)", action_type, payload, len(actions))

    def __len__(self):
        return len(self.read())

    def _replay(self, client, action):
        payload = action.get("payload") or {}
        if action.get("type") == "accept":
            client.accept(payload["orderId"])
        elif action.get("type") == "status":
            client.update_status(payload["orderId"], payload["status"])
        else:
            raise ValueError(f"Unknown action type: {action.get('type')}")

    def process(self, client):
        """Replay queued actions in order. Returns how many were sent.

        Sent actions leave the queue. Actions the server rejects with a 4xx
        and malformed entries are dropped. A network error or a 5xx stops the
        flush and keeps that action and everything after it.
        """
        actions = self.read()
        sent = 0
        done = 0
        for action in actions:
            try:
                self._replay(client, action)
            except DeliveryClientError as exc:
                if exc.status is None or exc.status >= 500:
                    logger.warning("Queue flush stopped at %s: %s", action, exc)
                    break
                logger.error("Dropping rejected action %s: %s", action, exc)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.error("Dropping malformed action %s: %r", action, exc)
            else:
                sent += 1
            done += 1

        if done:
            # actions enqueued while replaying are appended after the ones read
            self.write(self.read()[done:])
        return sent
