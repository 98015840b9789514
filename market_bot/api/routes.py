from datetime import datetime, timezone

from fastapi import APIRouter, Body, HTTPException, Request

from market_bot.errors import MarketDataUnavailableError

router = APIRouter()
health_router = APIRouter()


def _runtime(request: Request):
    runtime = getattr(request.app.state, 'runtime', None)
    if runtime is None:
        raise HTTPException(status_code=503, detail='RUNTIME_NOT_READY')
    return runtime


@health_router.get('/health')
def health():
    return {
        'status': 'ok',
        'message': 'Crypto Bot is running',
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


@router.get('/prices')
def get_prices(request: Request):
    runtime = _runtime(request)
    try:
        snapshot = runtime.market_data.get_market_data()
    except MarketDataUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return snapshot.model_dump()


@router.post('/report')
def send_report(request: Request, with_ai: bool = True):
    runtime = _runtime(request)
    sent = runtime.reporting.send_report(with_ai=with_ai)
    return {'sent': sent}


@router.get('/status')
def get_status(request: Request):
    runtime = _runtime(request)
    return runtime.collect_status().model_dump()


@router.get('/metrics/scheduler')
def scheduler_metrics(request: Request):
    runtime = _runtime(request)
    metrics = runtime.scheduler.metrics()
    metrics['market_data'] = runtime.market_data.metrics()
    metrics['telegram'] = {'sent': runtime.notifier.sent, 'failed': runtime.notifier.failed}
    return metrics


@router.post('/telegram/webhook')
def telegram_webhook(request: Request, update: dict = Body(...)):
    runtime = _runtime(request)
    handled = runtime.commands.process_update(update)
    return {'ok': True, 'handled': handled}
