import json

from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings

QUEUE_ROLES = {"doctor", "staff", "admin"}


class DoctorQueueConsumer(AsyncWebsocketConsumer):
    """Pushes doctor hand-offs to clinical staff screens."""

    @property
    def group(self) -> str:
        return getattr(settings, "CHECKIN_NOTIFY_GROUP", "doctor-queue")

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated and getattr(user, "role", None) in QUEUE_ROLES):
            await self.close(code=4403)
            return
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "group": self.group}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group, self.channel_name)

    async def doctor_notified(self, event):
        # event: {"type": "doctor.notified", "sessionId": int, "patientName": "...", ...}
        await self.send(json.dumps(event))
