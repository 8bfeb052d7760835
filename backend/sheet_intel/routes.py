"""
Flask Blueprint for the financial-table intelligence service.
Registers all /api/intel/* endpoints.
"""
import logging
import os
import tempfile
import threading
import time
import uuid
from typing import Dict, Optional

from flask import Blueprint, jsonify, request
from extensions import limiter

from .config import AnalysisConfig
from .excel_analyzer import TableAnalyzer, analyze_workbook
from .excel_analyzer.sheet_reader import CSV_EXTENSIONS, EXCEL_EXTENSIONS
from .ai_assistant import AIProviderFactory, AIServiceError, ChatHistory, ask_with_context

logger = logging.getLogger(__name__)

intel_bp = Blueprint('intel', __name__, url_prefix='/api/intel')

_config = AnalysisConfig.from_env()
_analyzer = TableAnalyzer(_config)

# ── In-memory session store ────────────────────────────────────────────────────
# Each session holds the latest analysis and its chat history. A new upload
# replaces the analysis wholesale; DELETE clears it.
_sessions: Dict[str, Dict] = {}
_sessions_lock = threading.Lock()
SESSION_TTL_SECONDS = 3600  # 1 hour


def _cleanup_sessions():
    """Background thread: remove expired sessions."""
    while True:
        time.sleep(300)
        now = time.time()
        with _sessions_lock:
            expired = [sid for sid, s in _sessions.items()
                       if now - s.get('created_at', 0) > SESSION_TTL_SECONDS]
            for sid in expired:
                _sessions.pop(sid, None)
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired intel sessions")


threading.Thread(target=_cleanup_sessions, daemon=True).start()


def _get_session(session_id: str) -> Optional[Dict]:
    with _sessions_lock:
        return _sessions.get(session_id)


def _set_session(session_id: str, data: Dict):
    with _sessions_lock:
        _sessions[session_id] = {**data, 'created_at': time.time()}


def _form_flag(name: str) -> bool:
    return request.form.get(name, '').strip().lower() in ('1', 'true', 'yes', 'on')


# ── Helper: AI provider from request headers ──────────────────────────────────
def _get_ai_provider_from_request():
    """Extract AI provider from request headers (BYOK only)."""
    provider_name = request.headers.get('X-AI-Provider', AIProviderFactory.DEFAULT_PROVIDER).lower()
    api_key = request.headers.get('X-AI-Key', '')
    model = request.headers.get('X-AI-Model', '')

    if not api_key:
        return None, "No AI API key provided. Please configure an API key in AI Settings."

    try:
        provider = AIProviderFactory.get_provider(provider_name, api_key, model or None)
        return provider, None
    except Exception as e:
        return None, str(e)


# ── Endpoints ─────────────────────────────────────────────────────────────────

@intel_bp.route('/analyze', methods=['POST'])
def analyze():
    """
    Upload one workbook (.xlsx/.xlsm) or CSV file and return its financial-table analysis.

    Form fields: sheet, range (e.g. "A1:H40"), all_sheets, include_workbook, session_id.
    """
    f = request.files.get('file')
    if not f or not f.filename:
        return jsonify({'error': 'No file uploaded'}), 400

    suffix = os.path.splitext(f.filename)[1].lower()
    if suffix not in EXCEL_EXTENSIONS + CSV_EXTENSIONS:
        return jsonify({'error': f"Only {', '.join(EXCEL_EXTENSIONS + CSV_EXTENSIONS)} files supported"}), 400

    sheet = request.form.get('sheet') or None
    cell_range = request.form.get('range') or None
    all_sheets = _form_flag('all_sheets') and suffix in EXCEL_EXTENSIONS
    include_workbook = _form_flag('include_workbook') or all_sheets

    tmp = tempfile.NamedTemporaryFile(delete=False, suffix=suffix)
    f.save(tmp.name)
    tmp.close()

    try:
        analysis = _analyzer.analyze_file(tmp.name, sheet_name=sheet, cell_range=cell_range,
                                          include_workbook=include_workbook)
        workbook_result = analyze_workbook(tmp.name, _config) if all_sheets else None
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Analysis failed for {f.filename}: {e}")
        return jsonify({'error': f'Failed to analyze {f.filename}: {str(e)}'}), 500
    finally:
        try:
            os.unlink(tmp.name)
        except OSError:
            pass

    session_id = request.form.get('session_id') or str(uuid.uuid4())
    existing = _get_session(session_id)
    # a conversation about one file does not carry over to another
    if existing and existing.get('filename') == f.filename:
        history = existing['history']
    else:
        history = ChatHistory(_config.max_chat_history)
    _set_session(session_id, {
        'analysis': analysis,
        'history': history,
        'filename': f.filename,
    })

    response = {'session_id': session_id, 'analysis': analysis.to_dict()}
    if workbook_result is not None:
        response['all_sheets'] = workbook_result
    return jsonify(response)


@intel_bp.route('/session/<session_id>', methods=['GET'])
def get_session(session_id):
    """Check session status."""
    session = _get_session(session_id)
    if not session:
        return jsonify({'error': 'Session expired or not found'}), 404
    analysis = session.get('analysis')
    return jsonify({
        'session_id': session_id,
        'has_analysis': analysis is not None,
        'summary': analysis.summary if analysis else None,
        'conversation_turns': session['history'].turns,
    })


@intel_bp.route('/session/<session_id>/analysis', methods=['DELETE'])
def clear_analysis(session_id):
    """Drop the held analysis and its conversation."""
    session = _get_session(session_id)
    if not session:
        return jsonify({'error': 'Session expired or not found'}), 404
    session['history'].clear()
    _set_session(session_id, {**session, 'analysis': None})
    return jsonify({'session_id': session_id, 'cleared': True})


# ── AI Endpoints ──────────────────────────────────────────────────────────────

@intel_bp.route('/ai/chat', methods=['POST'])
@limiter.limit("30 per minute;200 per day")
def ai_chat():
    """Answer a question about the session's analysed worksheet."""
    body = request.get_json(silent=True) or {}
    message = body.get('message', '').strip()
    session_id = body.get('session_id')

    if not message:
        return jsonify({'error': 'message is required'}), 400
    if not session_id:
        return jsonify({'error': 'session_id is required'}), 400

    session = _get_session(session_id)
    if not session:
        return jsonify({'error': 'Session expired. Please re-upload the file.'}), 404
    if session.get('analysis') is None:
        return jsonify({'error': 'No Excel data available. Analyse a worksheet first.'}), 400

    provider, err = _get_ai_provider_from_request()
    if err or not provider:
        return jsonify({'error': err or 'AI provider not configured'}), 503

    try:
        answer = ask_with_context(provider, message, session['analysis'], session['history'], _config)
    except AIServiceError as e:
        logger.error(f"AI chat failed: {e}")
        return jsonify({'error': str(e)}), 500

    return jsonify({'response': answer, 'conversation_turns': session['history'].turns})


@intel_bp.route('/ai/chat/clear', methods=['POST'])
def ai_chat_clear():
    """Start a fresh conversation, keeping the analysis."""
    body = request.get_json(silent=True) or {}
    session = _get_session(body.get('session_id', ''))
    if not session:
        return jsonify({'error': 'Session expired or not found'}), 404
    session['history'].clear()
    return jsonify({'cleared': True})


@intel_bp.route('/ai/test', methods=['POST'])
@limiter.limit("5 per minute;20 per day")
def ai_test():
    """Test an AI provider key without storing it."""
    provider, err = _get_ai_provider_from_request()
    if err or not provider:
        return jsonify({'success': False, 'error': err or 'No provider configured'}), 400

    try:
        ok = provider.test_connection()
        return jsonify({'success': ok})
    except Exception as e:
        return jsonify({'success': False, 'error': str(e)}), 400


@intel_bp.route('/providers', methods=['GET'])
def list_providers():
    """Return available AI providers and their models."""
    return jsonify(AIProviderFactory.list_providers())
