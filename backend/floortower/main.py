from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash
from floortower.errors import StoreError
from floortower.models import AdminUser
from floortower.services import board, countdown

main = Blueprint('main', __name__)


def _initial_view(view):
    """Server-side first paint; the socket feed takes over once connected."""
    try:
        state = current_app.extensions['game_store'].read_singleton()
    except StoreError as exc:
        current_app.logger.warning(f"[view-fetch] {view} page rendered without state: {exc}")
        state = None
    timers = countdown.derive_timers(state, countdown.utcnow())
    return board.render(state, timers, view)


@main.route('/')
def player():
    return render_template('player.html', view=_initial_view('player'))


@main.route('/admin')
@login_required
def admin():
    return render_template(
        'admin.html',
        view=_initial_view('admin'),
        default_minutes=current_app.config.get('DEFAULT_DURATION_MIN', 10),
    )


@main.route('/admin/login', methods=['GET', 'POST'])
def admin_login():
    if current_user.is_authenticated:
        return redirect(url_for('main.admin'))
    if request.method == 'POST':
        key = request.form.get('access_key', '')
        if key and check_password_hash(current_app.config['ACCESS_KEY_HASH'], key):
            login_user(AdminUser(), remember=True)
            current_app.logger.info('[admin-login] operator signed in')
            next_url = request.args.get('next') or ''
            if not next_url.startswith('/') or next_url.startswith('//'):
                next_url = url_for('main.admin')
            return redirect(next_url)
        current_app.logger.info('[admin-login] rejected access key')
        flash('Invalid access key')
        return render_template('login.html'), 401
    return render_template('login.html')


@main.route('/admin/logout', methods=['POST'])
@login_required
def admin_logout():
    logout_user()
    return redirect(url_for('main.admin_login'))
