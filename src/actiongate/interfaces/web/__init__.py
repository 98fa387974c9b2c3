"""HTTP gateway for the approval lifecycle."""

from .server import ApprovalGateway, create_app, create_gateway

__all__ = ["ApprovalGateway", "create_app", "create_gateway"]
