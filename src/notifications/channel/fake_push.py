"""Fake push notification adapter — records sent pushes for testing."""

from uuid import uuid4

from notifications.channel.push_port import FAILED, INVALID_TOKEN, SENT, PushPort


class FakePushAdapter(PushPort):
    """Push adapter that records notifications in memory for test assertions."""

    def __init__(self):
        self.sent_pushes: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Push delivery failed"
        self.invalid_tokens: set[str] = set()
        self.is_ready = True

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Push delivery failed",
        invalid_tokens=(),
        ready: bool = True,
    ):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.invalid_tokens = set(invalid_tokens)
        self.is_ready = ready

    def ready(self) -> bool:
        return self.is_ready

    def send(
        self,
        device_token: str,
        title: str,
        body: str,
        data: dict | None = None,
    ) -> dict:
        if device_token in self.invalid_tokens:
            return {"message_id": None, "status": INVALID_TOKEN, "error": "Unregistered device token"}
        if not self.should_succeed:
            return {
                "message_id": None,
                "status": FAILED,
                "error": self.failure_reason,
            }

        message_id = f"push-{uuid4().hex[:12]}"
        record = {
            "message_id": message_id,
            "device_token": device_token,
            "title": title,
            "body": body,
            "data": data,
        }
        self.sent_pushes.append(record)

        return {"message_id": message_id, "status": SENT}

    def reset(self):
        """Clear sent pushes (useful between tests)."""
        self.sent_pushes.clear()
        self.should_succeed = True
        self.failure_reason = "Push delivery failed"
        self.invalid_tokens.clear()
        self.is_ready = True
