"""
Request guard middleware.

Runs ahead of every view. Rejected requests get a 403 with a fixed message;
a blocked client receives the same message on every request, whether the
block happened now or earlier.
"""

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin
from django.utils.translation import gettext_lazy as _

from .conf import GuardConfig
from .descriptor import RequestDescriptor
from .engine import GuardVerdict, RequestGuard

DENY_MESSAGE = _("Your request could not be processed.")
BLOCK_MESSAGE = _(
    "Unusual activity was detected from your side and the operation you attempted "
    "has been permanently blocked. Please contact support to continue."
)


class RequestGuardMiddleware(MiddlewareMixin):
    """
    Gate every request through the RequestGuard.

    Configuration is read once, when Django builds the middleware chain.
    Place after AuthenticationMiddleware so session users are identified;
    bearer tokens are decoded by the descriptor itself.
    """

    def __init__(self, get_response=None):
        super().__init__(get_response)
        self.guard = RequestGuard(GuardConfig.from_settings())

    def process_request(self, request):
        if not self.guard.config.enabled:
            return None

        descriptor = RequestDescriptor.from_django_request(
            request, trust_forwarded_for=self.guard.config.trust_forwarded_for
        )
        verdict = self.guard.evaluate(descriptor)
        if verdict.allowed:
            return None

        message = BLOCK_MESSAGE if verdict is GuardVerdict.BLOCK else DENY_MESSAGE
        return JsonResponse({'error': True, 'message': str(message)}, status=403)
