"""
Payment card models for the guarded e-commerce application.

Card number, expiry and CVV are stored only as tokens produced by
core.field_encoder. The model itself never encodes or decodes: call sites
(the card serializer) encode before saving and decode before exposing a
value, so the stored columns are never handed out as-is.
"""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

# Width of an encoded token column; tokens for card fields are ~140 chars.
ENCODED_FIELD_LENGTH = 255


class UserCard(models.Model):
    """
    A payment card saved by a user.

    Security Considerations:
    - Sensitive fields hold encoded tokens, never plaintext
    - A user may hold at most settings.CARD_LIMIT_PER_USER cards
    - card_name is a user-chosen label and is not sensitive
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='cards',
        help_text=_("Owner of the card"),
    )

    card_number = models.CharField(
        max_length=ENCODED_FIELD_LENGTH,
        help_text=_("Encoded card number"),
    )
    card_expire = models.CharField(
        max_length=ENCODED_FIELD_LENGTH,
        help_text=_("Encoded expiry date"),
    )
    card_cvv = models.CharField(
        max_length=ENCODED_FIELD_LENGTH,
        help_text=_("Encoded card verification value"),
    )

    card_name = models.CharField(
        max_length=45,
        help_text=_("Label chosen by the user, e.g. 'My debit card'"),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='cards_user_created_idx'),
        ]
        verbose_name = _("User Card")
        verbose_name_plural = _("User Cards")

    def __str__(self):
        return f"{self.card_name} (user {self.user_id})"
