import logging

import requests

logger = logging.getLogger("paps.rider")

_DEFAULT_TIMEOUT = 10


class DeliveryClientError(RuntimeError):
    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


class DeliveryClient:
    """Thin wrapper over the authenticated ``/api/delivery`` endpoints."""

    def __init__(self, base_url, token=None, timeout=_DEFAULT_TIMEOUT, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.token = None
        if token:
            self.set_token(token)

    def set_token(self, token):
        self.token = token
        self.session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise DeliveryClientError(f"{method} {path} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.ok:
            message = payload.get("message") or payload.get("error") or response.reason
            raise DeliveryClientError(f"{method} {path}: {message}", status=response.status_code)
        return payload

    def signin(self, email, password):
        data = self._request("POST", "/api/signin", json={"email": email, "password": password})
        self.set_token(data["token"])
        return data["user"]

    def orders(self, status=None, q=None):
        params = {k: v for k, v in (("status", status), ("q", q)) if v}
        return self._request("GET", "/api/delivery/orders", params=params)

    def accept(self, order_id):
        return self._request("POST", f"/api/delivery/orders/{order_id}/accept")["order"]

    def update_status(self, order_id, status):
        return self._request(
            "POST", f"/api/delivery/orders/{order_id}/status", json={"status": status}
        )["order"]

    def set_availability(self, online):
        status = "online" if online else "offline"
        return self._request("POST", "/api/delivery/status", json={"status": status})["status"]

    def is_reachable(self):
        try:
            response = self.session.get(f"{self.base_url}/api/health", timeout=self.timeout)
        except requests.RequestException:
            return False
        return response.ok
