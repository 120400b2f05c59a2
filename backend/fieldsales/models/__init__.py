from .auth import User, SessionToken
from .staff import Manager, Agent, Worker
from .inventory import Product
from .sales import Sale
from .communications import Notification

__all__ = [
    'User', 'SessionToken',
    'Manager', 'Agent', 'Worker',
    'Product',
    'Sale',
    'Notification',
]
