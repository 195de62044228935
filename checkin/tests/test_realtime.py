import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from rest_framework.authtoken.models import Token

from checkin.models import User
from checkin.realtime.routing import websocket_application

# the token lookup runs on a worker thread, so rows must be committed
pytestmark = pytest.mark.django_db(transaction=True)


def _token_for(username, role, **extra):
    user = User.objects.create_user(username=username, password='P@ssw0rd1', role=role, **extra)
    return Token.objects.create(user=user).key


def _open(path):
    async def run():
        comm = WebsocketCommunicator(websocket_application(), path)
        connected, code = await comm.connect()
        if connected:
            await comm.disconnect()
        return connected, code

    return async_to_sync(run)()


def test_socket_without_credentials_rejected():
    assert _open('/ws/doctor-queue/') == (False, 4403)


def test_unknown_token_rejected():
    assert _open('/ws/doctor-queue/?token=not-a-key') == (False, 4403)


def test_patient_token_rejected():
    key = _token_for('patient1', 'patient')
    assert _open(f'/ws/doctor-queue/?token={key}') == (False, 4403)


def test_inactive_account_rejected():
    key = _token_for('doctor2', 'doctor', is_active=False)
    assert _open(f'/ws/doctor-queue/?token={key}') == (False, 4403)


def test_doctor_token_receives_hand_off():
    key = _token_for('doctor1', 'doctor')

    async def run():
        comm = WebsocketCommunicator(websocket_application(), f'/ws/doctor-queue/?token={key}')
        connected, _ = await comm.connect()
        assert connected
        welcome = await comm.receive_json_from()
        await get_channel_layer().group_send(
            'doctor-queue', {'type': 'doctor.notified', 'sessionId': 7, 'patientName': 'Maria Santos'},
        )
        event = await comm.receive_json_from()
        await comm.disconnect()
        return welcome, event

    welcome, event = async_to_sync(run)()
    assert welcome == {'type': 'welcome', 'group': 'doctor-queue'}
    assert event['sessionId'] == 7
