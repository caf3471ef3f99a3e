"""
Product models for the guarded e-commerce application.

Products carry a unique URL slug generated from their name, so they can be
looked up either by id or by slug.
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import IntegrityError, models, transaction
from django.utils.translation import gettext_lazy as _

from core.slugs import unique_slug

SLUG_MAX_LENGTH = 220
SLUG_SAVE_ATTEMPTS = 3


class Product(models.Model):
    """
    Represents a product available for sale.

    Security Considerations:
    - Prices are stored as Decimal to prevent floating-point errors
    - Soft deletion (is_active) preserves history
    - Slug uniqueness is enforced by the database as well as on generation
    """

    name = models.CharField(
        max_length=200,
        help_text=_("Product name (max 200 characters)"),
        db_index=True,
    )
    slug = models.SlugField(
        max_length=SLUG_MAX_LENGTH,
        unique=True,
        blank=True,
        help_text=_("URL-safe identifier generated from the name"),
    )
    description = models.TextField(
        help_text=_("Detailed product description"),
        blank=True,
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text=_("Product price in the base currency"),
    )
    stock = models.PositiveIntegerField(
        default=0,
        help_text=_("Current stock quantity available"),
    )
    is_active = models.BooleanField(
        default=True,
        help_text=_("If False, product is hidden from customers but preserved"),
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='products',
        help_text=_("User who created this product"),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'stock'], name='products_active_stock_idx'),
        ]
        verbose_name = _("Product")
        verbose_name_plural = _("Products")

    def __str__(self):
        return f"{self.name} ({self.slug})"

    def is_in_stock(self) -> bool:
        return self.stock > 0

    def slug_taken(self, candidate: str) -> bool:
        return Product.objects.filter(slug=candidate).exclude(pk=self.pk).exists()

    def assign_slug(self) -> None:
        """Generate a unique slug from the current name."""
        self.slug = unique_slug(self.name, self.slug_taken, max_length=SLUG_MAX_LENGTH)

    def save(self, *args, **kwargs):
        if self.slug:
            return super().save(*args, **kwargs)

        # a concurrent save may claim the same slug first; pick again
        for attempt in range(SLUG_SAVE_ATTEMPTS):
            self.assign_slug()
            try:
                with transaction.atomic():
                    return super().save(*args, **kwargs)
            except IntegrityError:
                if attempt == SLUG_SAVE_ATTEMPTS - 1:
                    raise
                self.slug = ''
