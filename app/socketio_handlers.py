"""
SocketIO Event Handlers - command/response protocol for optimizer runs.

Commands:  start_optimization, stop_optimization, get_optimizer_status
Events:    optimization_started, optimization_progress, optimization_complete,
           optimization_stopped, optimization_error, optimization_status

One run at a time. The run lives in a background task and yields to the
server before every fitness evaluation and after every generation.
"""

import threading

from flask_socketio import emit
from flask import request
from app import socketio

import sys
sys.path.insert(0, '.')
from app.engine.spins import build_history, parse_numbers, record_from_dict
from app.optimizer.genetic import GeneticOptimizer, RunContext, RunState
from app.optimizer.parameters import RunToggles, to_config_document


class OptimizationRunner:
    """Owns the single active optimizer run."""

    def __init__(self):
        self._lock = threading.Lock()
        self.optimizer = None
        self.sid = None
        self.last_result = None

    @property
    def is_running(self):
        return self.optimizer is not None and self.optimizer.state in (RunState.IDLE, RunState.RUNNING)

    def status(self):
        optimizer = self.optimizer
        if optimizer is None:
            state = self.last_result.state.value if self.last_result else RunState.IDLE.value
            return {'state': state, 'running': False, 'generation': 0}
        best = optimizer.best
        return {
            'state': optimizer.state.value,
            'running': self.is_running,
            'generation': optimizer.generation,
            'max_generations': optimizer.settings.max_generations,
            'best_fitness': best.fitness if best else 0.0,
        }

    def start(self, context, sid):
        """Spawn a run; False if one is already active."""
        with self._lock:
            if self.is_running:
                return False
            optimizer = GeneticOptimizer(context)
            self.optimizer = optimizer
            self.sid = sid

        socketio.emit('optimization_started', {
            'records': len(context.history),
            'seed': context.seed,
            'ga_settings': context.settings.to_dict(),
            'toggles': context.toggles.to_dict(),
        }, to=sid)
        socketio.start_background_task(self._run, optimizer, sid)
        return True

    def stop(self):
        optimizer = self.optimizer
        if optimizer is None or not self.is_running:
            return False
        optimizer.context.token.cancel()
        return True

    def _run(self, optimizer, sid):
        def _progress(report):
            socketio.emit('optimization_progress', report.to_payload(), to=sid)

        result = optimizer.run(on_progress=_progress, on_yield=lambda: socketio.sleep(0))

        if result.state == RunState.COMPLETED:
            socketio.emit('optimization_complete', {
                'generation': result.generation,
                'best_fitness': round(result.best_fitness, 6),
                'best_genome': result.best_genome.to_dict(),
                'config_document': to_config_document(result.best_genome),
                'toggles_used': result.toggles.to_dict(),
            }, to=sid)
        elif result.state == RunState.STOPPED:
            socketio.emit('optimization_stopped', {}, to=sid)
        else:
            socketio.emit('optimization_error', {'message': result.message or 'Optimization failed'}, to=sid)

        with self._lock:
            self.last_result = result
            if self.optimizer is optimizer:
                self.optimizer = None


runner = OptimizationRunner()


def _history_from_payload(data, toggles):
    """Resolved history from either 'history' records or raw 'numbers'."""
    dynamic = toggles.use_dynamic_terminal_neighbour_count
    if data.get('history'):
        return [record_from_dict(item, dynamic=dynamic) for item in data['history']]

    numbers = data.get('numbers') or []
    if isinstance(numbers, str):
        numbers = parse_numbers(numbers)
    return build_history(numbers, dynamic=dynamic)


@socketio.on('connect')
def handle_connect():
    emit('connected', {
        'message': 'Connected to Roulette Group Strategy Optimizer',
        'optimizer': runner.status(),
    })


@socketio.on('start_optimization')
def handle_start_optimization(data=None):
    data = data or {}
    if runner.is_running:
        emit('optimization_status', dict(runner.status(), already_running=True))
        return

    try:
        toggles = RunToggles.from_dict(data.get('toggles'))
        history = _history_from_payload(data, toggles)
        context = RunContext.create(
            history,
            strategy_domain=data.get('strategy_domain'),
            ga_settings=data.get('ga_settings'),
            toggles=toggles,
            seed=data.get('seed'),
        )
    except (ValueError, TypeError, AttributeError) as e:
        print(f"[Socket] start_optimization rejected: {e}")
        emit('optimization_error', {'message': str(e)})
        return

    if not context.history:
        emit('optimization_error', {'message': 'Need at least 3 spins to optimize.'})
        return

    print(f"[Socket] start_optimization: {len(context.history)} records")
    if not runner.start(context, request.sid):
        emit('optimization_status', dict(runner.status(), already_running=True))


@socketio.on('stop_optimization')
def handle_stop_optimization():
    stopping = runner.stop()
    print(f"[Socket] stop_optimization: {'cancelling' if stopping else 'nothing running'}")
    if not stopping:
        emit('optimization_status', runner.status())


@socketio.on('get_optimizer_status')
def handle_get_optimizer_status():
    emit('optimization_status', runner.status())
