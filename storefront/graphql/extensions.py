"""
GraphQL error handling
Decides which errors reach the shopper, which get logged, and signs out
sessions whose customer token Magento no longer accepts
"""
from typing import List, Optional
import logging

import strawberry
from graphql import GraphQLError
from strawberry.extensions import MaskErrors, SchemaExtension
from strawberry.types import ExecutionContext

from storefront.errors import CUSTOMER_TOKEN_EXPIRED, StorefrontError

logger = logging.getLogger(__name__)

MASKED_ERROR_MESSAGE = "Unexpected error."


def is_user_error(error: GraphQLError) -> bool:
    original = error.original_error
    return isinstance(original, StorefrontError) and original.user_message


def should_mask_error(error: GraphQLError) -> bool:
    """Mask resolver failures unless flagged for the shopper; query validation errors stay"""
    if error.original_error is None:
        return False
    return not is_user_error(error)


class StorefrontMaskErrors(MaskErrors):
    """Passed to the schema as a class so every operation gets its own instance"""

    def __init__(self, *, execution_context: Optional[ExecutionContext] = None):
        super().__init__(should_mask_error=should_mask_error, error_message=MASKED_ERROR_MESSAGE)


class StorefrontErrorsExtension(SchemaExtension):
    """Expose error codes and react to rejected customer tokens"""

    def on_operation(self):
        yield
        result = self.execution_context.result
        if not result or not result.errors:
            return

        for error in result.errors:
            original = error.original_error
            if not isinstance(original, StorefrontError) or not original.code:
                continue

            error.extensions = {**(error.extensions or {}), "code": original.code}

            if original.code == CUSTOMER_TOKEN_EXPIRED:
                context = self.execution_context.context
                session = getattr(context, "session", None)
                if session is not None:
                    logger.info("Customer token rejected by Magento, signing session out")
                    session.sign_out()


class StorefrontSchema(strawberry.Schema):
    """Schema logging only the errors worth an operator's attention"""

    def process_errors(
        self,
        errors: List[GraphQLError],
        execution_context: Optional[ExecutionContext] = None
    ) -> None:
        for error in errors:
            original = error.original_error
            if isinstance(original, StorefrontError) and original.no_logging:
                continue
            if original is None:
                logger.warning(f"GraphQL request error: {error.message}")
                continue
            logger.error(f"GraphQL resolver error at {error.path}: {original}", exc_info=original)
