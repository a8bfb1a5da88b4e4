"""
GraphQL Endpoint
Mounts the storefront schema; each request gets a backend bound to its session
"""
from fastapi import Request
from strawberry.fastapi import GraphQLRouter

from storefront.commerce.factory import create_backend
from storefront.config import settings
from storefront.graphql.schema import StorefrontContext, schema
from storefront.session import ShopSession

async def get_context(request: Request) -> StorefrontContext:
    """Build the GraphQL context from the visitor's HTTP session"""
    session = ShopSession(request.session)
    return StorefrontContext(create_backend(session))

router = GraphQLRouter(
    schema,
    context_getter=get_context,
    graphql_ide="graphiql" if settings.DEBUG else None,
)
