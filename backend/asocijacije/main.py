from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy import or_
from asocijacije import db
from asocijacije.models import User

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Asocijacije game server'})


@main.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not all([username, email, password]):
        return jsonify({'error': 'Username, email and password are required'}), 400
    if len(username) < 2 or len(username) > 20:
        return jsonify({'error': 'Username must be 2-20 characters'}), 400

    if User.query.filter(or_(User.username == username, User.email == email)).first():
        return jsonify({'error': 'Username or email already registered'}), 409

    user = User(username=username, email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    login_user(user, remember=True)
    return jsonify({'profile': user.to_dict()}), 201


@main.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    login_name = (data.get('username') or data.get('email') or '').strip()
    user = User.query.filter(or_(User.username == login_name, User.email == login_name.lower())).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify({'profile': user.to_dict()})
    return jsonify({'error': 'Invalid username or password'}), 401


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})


@main.route('/me')
@login_required
def me():
    return jsonify({'profile': current_user.to_dict()})
