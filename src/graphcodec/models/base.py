"""Base model class with automatic catalog registration.

This module provides the GraphModel class. Every subclass is registered with the
default type catalog when the class is created, using its pydantic fields as
the serialized members.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict


class GraphModel(BaseModel):
    """Base class for pydantic models stored with graphcodec.

    Fields without a default are required on decode; fields with a default are
    optional and fall back to it when a stream omits them.

    graphcodec-specific options can be configured as ClassVar attributes:

    Example:
        >>> from typing import ClassVar, Optional
        >>> class Sensor(GraphModel):
        ...     name: str
        ...     reading: float = 0.0
        ...     parent: Optional["Sensor"] = None
        ...
        ...     graph_name: ClassVar[Optional[str]] = "Sensor"

    Attributes:
        graph_name: Local wire name (default: the class qualname)
        graph_namespace: Wire namespace (default: the defining module)
        graph_value_type: Write instances by value instead of by reference
    """

    model_config = ConfigDict(
        # Allow graphcodec arrays and scalar types as field types
        arbitrary_types_allowed=True,
        # Decoded graphs may be cyclic; assignment must not re-validate them
        validate_assignment=False,
        # Forbid extra fields not defined in schema
        extra="forbid",
    )

    graph_name: ClassVar[str | None] = None
    graph_namespace: ClassVar[str | None] = None
    graph_value_type: ClassVar[bool] = False

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        """Hook called once pydantic has finished building a subclass.

        Registers the subclass with the default catalog so it can be written
        and resolved by name without further setup.
        """
        super().__pydantic_init_subclass__(**kwargs)

        from ..catalog import default_catalog

        # Wire names are per class, never inherited
        default_catalog.register(
            cls,
            name=cls.__dict__.get("graph_name"),
            namespace=cls.__dict__.get("graph_namespace"),
            value_type=cls.graph_value_type,
        )
