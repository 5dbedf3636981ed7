from .coerce_to_common_js import coerce_to_common_js
from .transform_service import AstTransformService, TraversalRule, transform_tree

__all__ = ["coerce_to_common_js", "AstTransformService", "TraversalRule", "transform_tree"]
