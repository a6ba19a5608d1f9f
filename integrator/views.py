import base64
import hashlib
import hmac
import json
import logging

from django.conf import settings
from django.forms.models import model_to_dict
from django.http import HttpResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from integrator.exceptions import IntegrationError
from integrator.services import get_ledger, get_order_processor, get_synchronizer, get_vendor_client

logger = logging.getLogger(__name__)

RECORD_FIELDS = [
    'shopify_order_id', 'package_id', 'customer_email', 'customer_name', 'status',
    'vendor_transaction_id', 'error_message', 'created_at', 'updated_at',
]


def verify_webhook(body, signature):
    secret = getattr(settings, 'SHOPIFY_WEBHOOK_SECRET', '')
    if not secret or not signature:
        return False
    digest = hmac.new(secret.encode('utf-8'), body, hashlib.sha256).digest()
    return hmac.compare_digest(base64.b64encode(digest), signature.encode('utf-8'))


def _record_as_dict(record):
    return model_to_dict(record, fields=RECORD_FIELDS) | {
        'created_at': record.created_at.isoformat(),
        'updated_at': record.updated_at.isoformat(),
    }


@require_GET
def health(request):
    try:
        get_vendor_client().check_and_refresh(force=True)
    except IntegrationError as exc:
        logger.warning("Health check failed: %s", exc)
        return JsonResponse({'status': 'unhealthy', 'error': str(exc)}, status=503)
    return JsonResponse({
        'status': 'healthy',
        'services': {'vendor': 'connected'},
        'timestamp': timezone.now().isoformat(),
    })


@csrf_exempt
@require_POST
def trigger_sync(request):
    try:
        outcome = get_synchronizer().run()
    except IntegrationError as exc:
        return JsonResponse({'error': str(exc)}, status=502)
    return JsonResponse(outcome.as_dict(), status=409 if outcome.status == 'skipped' else 200)


@csrf_exempt
@require_POST
def order_created_webhook(request):
    if not verify_webhook(request.body, request.headers.get('X-Shopify-Hmac-Sha256')):
        logger.warning("Rejected order webhook with invalid signature")
        return HttpResponse('Invalid signature', status=401)

    try:
        order = json.loads(request.body)
    except ValueError:
        return HttpResponse('Invalid payload', status=400)
    if not isinstance(order, dict):
        return HttpResponse('Invalid payload', status=400)

    try:
        result = get_order_processor().handle_order(order)
    except Exception as exc:
        # a 5xx makes the platform redeliver; the ledger keeps redelivery safe
        logger.exception("Order %s processing failed", order.get('id'))
        return HttpResponse(str(exc), status=500)
    return JsonResponse(result)


@require_GET
def order_status(request, order_id):
    records = get_ledger().for_order(order_id)
    return JsonResponse([_record_as_dict(r) for r in records], safe=False)


@require_GET
def recent_orders(request):
    records = get_ledger().recent(limit=10)
    return JsonResponse([_record_as_dict(r) for r in records], safe=False)
