from channels.routing import URLRouter
from django.urls import path

from .consumers import DoctorQueueConsumer
from .middleware import TokenAuthMiddlewareStack

websocket_urlpatterns = [
    path("ws/doctor-queue/", DoctorQueueConsumer.as_asgi()),
]


def websocket_application():
    return TokenAuthMiddlewareStack(URLRouter(websocket_urlpatterns))
