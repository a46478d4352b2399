"""
Effets de bord post-commande: email de confirmation et vidage du panier.

Les deux opérations sont exécutées jusqu'au bout avant la redirection, mais leurs
échecs sont journalisés et ignorés: une commande créée n'est jamais remise en cause.
"""
import html
import logging
from typing import List, Optional

from backend.infra import email_client

from . import orders_client
from .normalizer import OrderLineItem

logger = logging.getLogger(__name__)

DEFAULT_FLYER_NAME = "Custom Flyer"


def _extras(item: OrderLineItem) -> List[str]:
    extras = []
    if item.story_size_version:
        extras.append("Story Size Version")
    if item.custom_flyer:
        extras.append("Custom Flyer")
    if item.animated_flyer:
        extras.append("Animated Flyer")
    if item.instagram_post_size:
        extras.append("Instagram Post Size")
    return extras

def render_confirmation_html(order_id: str, item: OrderLineItem) -> str:
    """Corps HTML de l'email de confirmation (valeurs échappées)."""
    esc = html.escape
    extras = _extras(item)
    rows = [
        f"<p><strong>Order number:</strong> #{esc(str(order_id))}</p>",
        f"<p><strong>Flyer:</strong> {esc(item.event_title or DEFAULT_FLYER_NAME)}</p>",
        f"<p><strong>Delivery time:</strong> {esc(item.delivery_time)}</p>",
    ]
    if extras:
        rows.append(f"<p><strong>Extras:</strong> {esc(', '.join(extras))}</p>")
    rows.append(f"<p><strong>Total:</strong> ${item.total_price:.2f}</p>")
    if item.image_url:
        rows.append(f'<p><img src="{esc(item.image_url, quote=True)}" alt="Flyer preview" width="300"></p>')
    body = "\n".join(rows)
    return (
        "<html><body>"
        "<h1>Thank you for your order!</h1>"
        f"{body}"
        "<p>We will get in touch as soon as your flyer is ready.</p>"
        "</body></html>"
    )

def render_confirmation_text(order_id: str, item: OrderLineItem) -> str:
    lines = [
        "Thank you for your order!",
        f"Order number: #{order_id}",
        f"Flyer: {item.event_title or DEFAULT_FLYER_NAME}",
        f"Delivery time: {item.delivery_time}",
    ]
    extras = _extras(item)
    if extras:
        lines.append(f"Extras: {', '.join(extras)}")
    lines.append(f"Total: ${item.total_price:.2f}")
    return "\n".join(lines)


class SideEffectDispatcher:
    """
    Effets de bord injectables dans l'orchestrateur (tests: MagicMock ou sous-classe).
    Chaque méthode retourne True si l'effet a abouti, False sinon; aucune ne lève.
    """

    def send_confirmation(self, order_id: str, recipient: Optional[str], item_summary: OrderLineItem) -> bool:
        if not recipient:
            logger.info("checkout.side_effects.send_confirmation skipped: no recipient order_id=%s", order_id)
            return False
        try:
            result = email_client.send(
                recipient,
                f"Order Confirmation #{order_id}",
                render_confirmation_html(order_id, item_summary),
                render_confirmation_text(order_id, item_summary),
            )
        except Exception:
            logger.exception("checkout.side_effects.send_confirmation failed order_id=%s", order_id)
            return False
        return result is not None

    def clear_cart(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        try:
            orders_client.clear_cart(user_id)
        except Exception:
            logger.exception("checkout.side_effects.clear_cart failed user_id=%s", user_id)
            return False
        logger.info("checkout.side_effects.clear_cart ok user_id=%s", user_id)
        return True
