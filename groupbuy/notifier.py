"""Best-effort webhook calls to the notification dispatcher."""
import requests
from flask import current_app


def _post_event(event, general_order, recipients):
    url = current_app.config.get('NOTIFY_WEBHOOK_URL')
    if not url:
        return False

    payload = {
        'event': event,
        'general_order': general_order.summary(),
        'recipients': recipients,
    }
    try:
        res = requests.post(url, json=payload, timeout=current_app.config['NOTIFY_TIMEOUT'])
        res.raise_for_status()
    except requests.RequestException as e:
        # the state change already succeeded; only the notice is lost
        current_app.logger.warning("%s notice for general order %s failed: %s", event, general_order.id, e)
        return False
    return True


def notify_general_order_closed(general_order, recipients):
    return _post_event('general_order_closed', general_order, recipients)


def notify_general_order_opened(general_order, recipients):
    return _post_event('general_order_opened', general_order, recipients)
