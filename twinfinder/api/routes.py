"""
Flask routes for TwinFinder.

JSON endpoints for starting and cancelling analyses, reading results, and
acting on them (trash, open folder, CSV export).
"""

from __future__ import annotations

import io
import logging
from datetime import datetime

from flask import Blueprint, Response, jsonify, request

from ..state import analysis_session
from ..user_config import get_user_config
from ..utils import validators
from ..utils.exporters import write_rows_csv

# Create blueprint for routes
api = Blueprint('api', __name__)

# Module logger
_logger = logging.getLogger(__name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@api.route('/api/ping')
def api_ping():
    """Simple endpoint for connection monitoring."""
    return jsonify({'status': 'ok', 'time': datetime.now().isoformat()})


@api.route('/api/analyze', methods=['POST'])
def api_analyze():
    """Start a new analysis in the background."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body required'}), 400

    config = get_user_config()
    roots = data.get('roots')
    if isinstance(roots, str):
        roots = [roots]
    threshold = data.get('threshold', config.default_threshold)
    top_level_only = bool(data.get('topLevelOnly', config.top_level_only))
    strategy = data.get('strategy', config.default_strategy)
    hash_algorithm = data.get('hashAlgorithm', config.hash_algorithm)
    ignored_folder_name = data.get('ignoredFolderName', config.ignored_folder_name) or ''
    workers = data.get('workers', config.default_workers)
    excluded_folders = data.get('excludedFolders') or []
    if isinstance(excluded_folders, str):
        excluded_folders = [excluded_folders]

    is_valid, error = validators.validate_analysis_params(
        roots, threshold, strategy, workers, excluded_folders
    )
    if not is_valid:
        return jsonify({'error': error}), 400

    for root in roots:
        is_valid, error = validators.validate_directory(root)
        if not is_valid:
            return jsonify({'error': error}), 400

    try:
        run = analysis_session.start_analysis(
            roots,
            float(threshold),
            top_level_only=top_level_only,
            strategy=strategy,
            ignored_folder_name=str(ignored_folder_name),
            max_workers=max(1, min(int(workers), 16)),
            hash_algorithm=hash_algorithm,
            excluded_folders=excluded_folders,
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'status': 'started', 'run_id': run.run_id})


@api.route('/api/cancel', methods=['POST'])
def api_cancel():
    """Cancel the running analysis."""
    if analysis_session.cancel():
        return jsonify({'status': 'cancel_requested'})
    return jsonify({'status': 'no_analysis_running'})


@api.route('/api/status')
def api_status():
    """Return current analysis status and progress."""
    return jsonify(analysis_session.to_status_dict())


@api.route('/api/groups')
def api_groups():
    """Return all similarity groups."""
    return jsonify(analysis_session.to_groups_dict())


@api.route('/api/rows')
def api_rows():
    """Return flattened reference/match rows."""
    cross_folder_only = request.args.get('crossFolder', '').lower() in ('1', 'true', 'yes')
    return jsonify(analysis_session.to_rows_dict(cross_folder_only=cross_folder_only))


@api.route('/api/folders')
def api_folders():
    """Return folder clusters and cross-folder pairs."""
    return jsonify(analysis_session.to_folders_dict())


@api.route('/api/delete', methods=['POST'])
def api_delete():
    """Move one image to the trash and prune it from the results."""
    path = str(_json_body().get('path', '')).strip()
    if not path:
        return jsonify({'error': 'No path specified'}), 400

    if analysis_session.is_running:
        return jsonify({'error': 'Cannot delete while an analysis is running'}), 409

    success, error = analysis_session.delete_file(path)
    if not success:
        return jsonify({'error': error}), 400

    return jsonify({
        'status': 'deleted',
        'path': path,
        'group_count': len(analysis_session.groups),
    })


@api.route('/api/delete_folder', methods=['POST'])
def api_delete_folder():
    """Move a whole folder to the trash and prune its images from the results."""
    folder = str(_json_body().get('folder', '')).strip()
    if not folder:
        return jsonify({'error': 'No folder specified'}), 400

    if analysis_session.is_running:
        return jsonify({'error': 'Cannot delete while an analysis is running'}), 409

    success, error = analysis_session.delete_folder(folder)
    if not success:
        return jsonify({'error': error}), 400

    return jsonify({
        'status': 'deleted',
        'folder': folder,
        'group_count': len(analysis_session.groups),
    })


@api.route('/api/open_folder', methods=['POST'])
def api_open_folder():
    """Reveal a folder in the platform file manager."""
    path = str(_json_body().get('path', '')).strip()
    if not path:
        return jsonify({'error': 'No path specified'}), 400

    success, error = analysis_session.open_folder(path)
    if not success:
        return jsonify({'error': error}), 400
    return jsonify({'status': 'opened'})


@api.route('/api/export')
def api_export():
    """Download the current match rows as CSV."""
    buffer = io.StringIO()
    write_rows_csv(analysis_session.current_rows(), buffer)
    filename = f"twinfinder_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    return Response(
        buffer.getvalue(),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )


@api.route('/api/clear', methods=['POST'])
def api_clear():
    """Cancel any running analysis and clear results."""
    analysis_session.cancel()
    analysis_session.reset()
    return jsonify({'status': 'cleared'})


@api.route('/api/config')
def api_config():
    """Return the effective user configuration defaults."""
    return jsonify(get_user_config().to_dict())
