import importlib
import re

import pytest

from floortower import create_app, db
from floortower.errors import ConfigError
from floortower.models import GameState
from conftest import ACCESS_KEY, TestConfig, login


def _headers(key=ACCESS_KEY):
    return {'X-Access-Key': key}


def test_missing_settings_abort_startup():
    class NoKey(TestConfig):
        ACCESS_KEY = None

    class NoStore(TestConfig):
        SQLALCHEMY_DATABASE_URI = ''

    with pytest.raises(ConfigError, match='ACCESS_KEY'):
        create_app(NoKey)
    with pytest.raises(ConfigError, match='SQLALCHEMY_DATABASE_URI'):
        create_app(NoStore)


def test_get_state(client, clock):
    res = client.get('/api/state')
    assert res.status_code == 200
    data = res.get_json()
    assert data['id'] == 1
    assert data['is_running'] is False
    assert data['active_floors'] == []
    assert data['timers']['display'] == '0:00'


def test_get_state_missing_row(client):
    db.session.delete(db.session.get(GameState, 1))
    db.session.commit()
    res = client.get('/api/state')
    assert res.status_code == 404
    assert 'error' in res.get_json()


def test_patch_state_requires_key(client):
    res = client.patch('/api/state', json={'broadcast_message': 'hi'})
    assert res.status_code == 401
    res = client.patch('/api/state', json={'broadcast_message': 'hi'}, headers=_headers('wrong'))
    assert res.status_code == 401
    assert client.get('/api/state').get_json()['broadcast_message'] == ''


def test_patch_state_partial_update(client):
    res = client.patch('/api/state', json={
        'is_running': True,
        'end_time': '2026-01-01T20:10:00+00:00',
        'active_floors': [3, 1],
    }, headers=_headers())
    assert res.status_code == 200
    data = res.get_json()
    assert data['is_running'] is True
    assert data['end_time'] == '2026-01-01T20:10:00+00:00'
    assert data['active_floors'] == [1, 3]
    assert data['broadcast_message'] == ''


@pytest.mark.parametrize('body', [{'active_floors': [12]}, {'nope': 1}, {}])
def test_patch_state_rejected(client, body):
    res = client.patch('/api/state', json=body, headers=_headers())
    assert res.status_code == 400
    assert 'error' in res.get_json()


def test_patch_state_needs_json_object(client):
    res = client.patch('/api/state', json=[1, 2], headers=_headers())
    assert res.status_code == 400


def test_player_page_renders_board(client, store):
    store.update_singleton({'is_running': True, 'active_floors': [0, 4], 'broadcast_message': '<go>'})
    res = client.get('/')
    assert res.status_code == 200
    html = res.get_data(as_text=True)
    labels = re.findall(r'data-floor="(\d)"', html)
    assert labels == ['9', '8', '7', '6', '5', '4', '3', '2', '1', '0']
    assert 'G / F' in html
    assert 'class="active" data-floor="4"' in html
    assert 'class="active" data-floor="0"' in html
    assert 'class="" data-floor="5"' in html
    assert '&lt;go&gt;' in html
    assert 'GAME ON!' in html


def test_player_page_without_state_renders_shell(client):
    db.session.delete(db.session.get(GameState, 1))
    db.session.commit()
    res = client.get('/')
    assert res.status_code == 200
    assert 'id="player" hidden' in res.get_data(as_text=True)


def test_admin_requires_login(client):
    res = client.get('/admin')
    assert res.status_code == 302
    assert '/admin/login' in res.headers['Location']


def test_admin_login_with_wrong_key(client):
    res = login(client, 'wrong')
    assert res.status_code == 401
    assert client.get('/admin').status_code == 302


def test_admin_login_and_logout(client):
    res = login(client)
    assert res.status_code == 302
    page = client.get('/admin')
    assert page.status_code == 200
    html = page.get_data(as_text=True)
    assert 'Standby' in html
    assert 'value="10"' in html

    client.post('/admin/logout')
    assert client.get('/admin').status_code == 302


HANDSHAKE = '/socket.io/?EIO=4&transport=polling'


def test_default_config_accepts_lan_origin(monkeypatch):
    import config
    monkeypatch.delenv('CORS_ORIGINS', raising=False)
    config = importlib.reload(config)

    class LanConfig(config.Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = 'sqlite://'
        ACCESS_KEY = ACCESS_KEY

    assert LanConfig.CORS_ORIGINS is None
    lan_client = create_app(LanConfig).test_client()
    for origin in ('http://localhost:5000', 'http://192.168.1.20:5000'):
        res = lan_client.get(HANDSHAKE, base_url=origin, headers={'Origin': origin})
        assert res.status_code == 200, origin


def test_configured_origins_reject_others(client):
    res = client.get(HANDSHAKE, base_url='http://localhost',
                     headers={'Origin': 'http://192.168.1.20:5000'})
    assert res.status_code == 400
    res = client.get(HANDSHAKE, base_url='http://localhost',
                     headers={'Origin': 'http://localhost'})
    assert res.status_code == 200
