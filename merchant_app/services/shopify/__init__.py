from .client import ShopifyAdminClient, ShopifyGraphQLError

__all__ = ["ShopifyAdminClient", "ShopifyGraphQLError"]
