"""Gateway operation services: token generation, STK push, payout, URL registration."""

from mpesapy.core.services.auth import Auth
from mpesapy.core.services.env_initializer import EnvInitializer
from mpesapy.core.services.payout import Payout
from mpesapy.core.services.register_url import RegisterUrl
from mpesapy.core.services.stk_push import StkPush

__all__ = ["Auth", "EnvInitializer", "Payout", "RegisterUrl", "StkPush"]
