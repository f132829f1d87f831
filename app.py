#!/usr/bin/env python3
"""
Wearly - Web Application
Flask server with WebSocket support for live chat updates
"""

import asyncio
import logging
import os
import shutil
import tempfile
import threading

from dotenv import load_dotenv
from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO, emit, join_room
from werkzeug.exceptions import HTTPException
from werkzeug.utils import secure_filename

# Load environment variables
load_dotenv()

from config import check_environment, load_config
from models.schemas import SessionEvent
from services.errors import StylingServiceError
from services.image_converter import file_to_data_url
from services.session_manager import get_session_manager
from services.stylist import StylingService
from services.turn_controller import TurnController

config = load_config()

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
logger = logging.getLogger("wearly.app")

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024  # 50MB max (several phone photos)
app.config['UPLOAD_FOLDER'] = config.upload_folder
app.config['OUTPUT_FOLDER'] = config.output_folder
app.config['SECRET_KEY'] = config.secret_key

# Enable CORS
CORS(app)

# Initialize SocketIO
socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')

# Ensure folders exist
os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
os.makedirs(app.config['OUTPUT_FOLDER'], exist_ok=True)

session_manager = get_session_manager(config.session_timeout_minutes)

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'bmp', 'webp', 'heic', 'heif'}

TURN_TIMEOUT_SECONDS = 300


def emit_session_event(event: SessionEvent):
    """Push a session state change to everyone in the session's room"""
    socketio.emit('session_event', event.to_dict(), room=event.session_id)


controller = TurnController(StylingService(config), config, on_event=emit_session_event)

# All turns run on one event loop so each session's lock is shared
turn_loop = asyncio.new_event_loop()
threading.Thread(target=turn_loop.run_forever, name="turn-loop", daemon=True).start()


def run_turn(coro):
    """Run a controller coroutine on the turn loop and wait for its result"""
    return asyncio.run_coroutine_threadsafe(coro, turn_loop).result(timeout=TURN_TIMEOUT_SECONDS)


def allowed_file(filename):
    """Check if file extension is allowed"""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def save_upload(file, temp_dir, prefix):
    """
    Save an uploaded file into temp_dir.

    Raises:
        ValueError: If the file is missing or has an unsupported extension
    """
    if not file or not file.filename:
        raise ValueError('Invalid image')
    if not allowed_file(file.filename):
        raise ValueError(f'Unsupported image type: {file.filename}')

    safe_name = secure_filename(file.filename) or f"{prefix}.jpg"
    filepath = os.path.join(temp_dir, f"{prefix}_{safe_name}")
    file.save(filepath)
    return filepath


def turn_response(session, status):
    return jsonify({
        'status': status.value,
        'session': session.to_dict(),
    })


def session_not_found():
    return jsonify({'error': 'Session not found or expired'}), 404


@app.errorhandler(ValueError)
def handle_value_error(e):
    return jsonify({'error': str(e)}), 400


@app.errorhandler(StylingServiceError)
def handle_service_error(e):
    return jsonify({'error': str(e)}), 502


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    logger.exception("Unhandled error: %s", e)
    return jsonify({'error': f'Server error: {str(e)}'}), 500


@app.route('/api/session', methods=['POST'])
def create_session():
    """Start a new chat session holding only the greeting"""
    session_manager.cleanup_expired_sessions()
    session = session_manager.create_session()
    logger.info("Created session %s", session.session_id)
    return jsonify(session.to_dict()), 201


@app.route('/api/session/<session_id>', methods=['GET'])
def get_session_info(session_id):
    """Get the full state of a session"""
    session = session_manager.get_session(session_id)
    if not session:
        return session_not_found()

    data = session.to_dict()
    data['context'] = session.get_context_summary()
    return jsonify(data)


@app.route('/api/session/<session_id>/settings', methods=['POST'])
def apply_settings(session_id):
    """
    Apply profile settings.

    Accepts JSON, or a form with an optional ``profile_image`` file and
    repeated ``colors`` fields.
    """
    session = session_manager.get_session(session_id)
    if not session:
        return session_not_found()

    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form.to_dict()
        payload['colors'] = request.form.getlist('colors')

    profile_file = request.files.get('profile_image')
    if profile_file and profile_file.filename:
        temp_dir = tempfile.mkdtemp(dir=app.config['UPLOAD_FOLDER'])
        try:
            payload['profile_image'] = file_to_data_url(save_upload(profile_file, temp_dir, 'profile'))
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)
    elif 'profile_image' not in payload:
        payload['profile_image'] = session.settings.profile_image

    status = run_turn(controller.apply_settings(session, payload))
    return turn_response(session, status)


@app.route('/api/session/<session_id>/messages', methods=['POST'])
def send_message(session_id):
    """
    Send a chat message.

    Accepts:
        - text: Message text or a quick reply
        - image: Optional outfit photo
    """
    session = session_manager.get_session(session_id)
    if not session:
        return session_not_found()

    payload = request.get_json(silent=True) or request.form
    text = (payload.get('text') or '').strip()
    image_file = request.files.get('image')

    temp_dir = tempfile.mkdtemp(dir=app.config['UPLOAD_FOLDER'])
    try:
        image_path = None
        if image_file and image_file.filename:
            image_path = save_upload(image_file, temp_dir, 'attachment')

        status = run_turn(controller.send(session, text, image_path=image_path))
        return turn_response(session, status)
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


@app.route('/api/session/<session_id>/feedback', methods=['POST'])
def give_feedback(session_id):
    """Like/dislike a message: JSON {"message_id": int, "feedback": "like"|"dislike"|null}"""
    session = session_manager.get_session(session_id)
    if not session:
        return session_not_found()

    data = request.get_json(silent=True) or {}
    if 'message_id' not in data:
        raise ValueError('message_id is required')

    status = run_turn(controller.feedback(session, int(data['message_id']), data.get('feedback')))
    return turn_response(session, status)


@app.route('/api/session/<session_id>/history', methods=['GET'])
def get_history(session_id):
    """List liked outfits (내코디)"""
    session = session_manager.get_session(session_id)
    if not session:
        return session_not_found()

    return jsonify({
        'items': [m.to_dict() for m in session.conversation.liked_items()],
    })


@app.route('/api/session/<session_id>/history', methods=['POST'])
def add_history_images(session_id):
    """Add one or more photos (``images`` files) straight to the liked list"""
    session = session_manager.get_session(session_id)
    if not session:
        return session_not_found()

    files = request.files.getlist('images')
    if not files:
        raise ValueError('No images provided')

    temp_dir = tempfile.mkdtemp(dir=app.config['UPLOAD_FOLDER'])
    try:
        # validate every upload before the first one touches the session
        paths = [save_upload(file, temp_dir, f"history_{idx}") for idx, file in enumerate(files)]

        status = None
        for path in paths:
            status = run_turn(controller.add_image_to_history(session, path))
        return turn_response(session, status)
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


@app.route('/api/session/<session_id>/history/<int:message_id>', methods=['DELETE'])
def remove_history_item(session_id, message_id):
    """Remove an outfit from the liked list"""
    session = session_manager.get_session(session_id)
    if not session:
        return session_not_found()

    status = run_turn(controller.remove_from_history(session, message_id))
    return turn_response(session, status)


@app.route('/api/session/<session_id>/history/recommend', methods=['POST'])
def recommend_from_history(session_id):
    """
    Generate a new outfit from liked images.

    JSON {"message_ids": [...]} uses the selected items; without ids, all
    liked items are used.
    """
    session = session_manager.get_session(session_id)
    if not session:
        return session_not_found()

    data = request.get_json(silent=True) or {}
    message_ids = data.get('message_ids')
    if message_ids:
        images = controller.liked_images(session, [int(i) for i in message_ids])
        source = 'selected'
    else:
        images = controller.liked_images(session)
        source = 'all'

    status = run_turn(controller.recommend_from_history(session, images, source))
    return turn_response(session, status)


@app.route('/api/session/<session_id>/reset', methods=['POST'])
def reset_session(session_id):
    """Start the conversation over with empty settings"""
    session = session_manager.get_session(session_id)
    if not session:
        return session_not_found()

    status = run_turn(controller.reset(session))
    return turn_response(session, status)


@app.route('/api/region', methods=['GET'])
def region_from_coords():
    """Resolve ?lat=&lon= to a region name"""
    try:
        latitude = float(request.args['lat'])
        longitude = float(request.args['lon'])
    except (KeyError, ValueError):
        raise ValueError('lat and lon query parameters are required')

    region = run_turn(controller.services.get_region_from_coords(latitude, longitude))
    if not region:
        return jsonify({'region': None, 'error': '현재 위치의 지역을 찾을 수 없습니다. 직접 선택해주세요.'}), 404
    return jsonify({'region': region})


@app.route('/output/<filename>')
def serve_output(filename):
    """Serve generated outfit images"""
    return send_from_directory(app.config['OUTPUT_FOLDER'], filename)


@app.route('/health')
def health():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'active_sessions': session_manager.get_session_count()
    })


def socket_action_params(session, action, params):
    """
    Check and complete the params of a socket action.

    Sockets only carry JSON, so anything that would name a file on this
    server is refused: images arrive through the HTTP upload endpoints and
    liked images are looked up by message id.

    Raises:
        ValueError: If the action needs an upload or names an image directly
    """
    params = dict(params)
    if action == 'add_image_to_history' or (action == 'send' and params.get('image_path')):
        raise ValueError(f'{action} with an image requires an HTTP upload')

    if action == 'send':
        params.pop('image_path', None)
    elif action == 'apply_settings':
        settings = dict(params.get('settings') or {})
        settings['profile_image'] = session.settings.profile_image
        params['settings'] = settings
    elif action == 'recommend_from_history':
        if 'images' in params:
            raise ValueError('recommend_from_history takes message_ids, not images')
        message_ids = params.pop('message_ids', None)
        if message_ids:
            params['images'] = controller.liked_images(session, [int(i) for i in message_ids])
            params['source'] = 'selected'
        else:
            params['images'] = controller.liked_images(session)
            params['source'] = 'all'
    return params


# WebSocket event handlers
@socketio.on('connect')
def handle_connect():
    """Handle client connection"""
    logger.info("Client connected: %s", request.sid)
    emit('connected', {'sid': request.sid})


@socketio.on('disconnect')
def handle_disconnect():
    """Handle client disconnection"""
    logger.info("Client disconnected: %s", request.sid)


@socketio.on('join')
def handle_join(data):
    """Subscribe this socket to a session's events"""
    session_id = (data or {}).get('session_id')
    session = session_manager.get_session(session_id) if session_id else None
    if not session:
        emit('error', {'error': 'Session not found or expired'})
        return
    join_room(session_id)
    emit('session_state', session.to_dict())


@socketio.on('action')
def handle_action(data):
    """
    Run a controller action: {"session_id", "action", "params": {...}}.

    File uploads go through the HTTP endpoints; see socket_action_params.
    """
    data = data or {}
    session = session_manager.get_session(data.get('session_id', ''))
    if not session:
        emit('error', {'error': 'Session not found or expired'})
        return

    action = data.get('action')
    try:
        params = socket_action_params(session, action, data.get('params') or {})
        status = run_turn(controller.dispatch(session, action, **params))
    except (TypeError, ValueError) as e:
        emit('error', {'error': str(e)})
        return
    emit('action_result', {'action': action, 'status': status.value})


if __name__ == '__main__':
    missing_vars = check_environment()

    if missing_vars:
        print("❌ Error: Missing required environment variables:")
        for var in missing_vars:
            print(f"   - {var}")
        print("\nPlease set these in your .env file.")
        raise SystemExit(1)

    print("🚀 Starting Wearly Web Server with WebSocket support...")
    print(f"📱 Open http://localhost:{config.port} in your browser")

    socketio.run(app, debug=True, host='0.0.0.0', port=config.port, allow_unsafe_werkzeug=True)
