"""
HTTP Routes - Health check and the optimizer's parameter schema.
"""

from flask import Blueprint, jsonify

import sys
sys.path.insert(0, '.')
from app.optimizer.parameters import (
    PARAMETER_SPECS, StrategyConfig, RunToggles, GASettings, to_config_document,
)

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    return jsonify({'status': 'ok', 'service': 'Roulette Group Strategy Optimizer'})


@main_bp.route('/api/parameters')
def parameters():
    """Genome domains plus the default configuration document."""
    return jsonify({
        'parameters': [spec.to_dict() for spec in PARAMETER_SPECS],
        'defaults': to_config_document(StrategyConfig()),
        'toggles': RunToggles().to_dict(),
        'ga_settings': GASettings().to_dict(),
    })
