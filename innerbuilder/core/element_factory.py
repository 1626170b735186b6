"""Factory helpers for synthesized declarations and statements.

Every member the generator adds is created here, so the textual shape of
generated code (modifier order, statement forms, Javadoc wording) is defined
in one place.
"""

from innerbuilder.core.declarations import (
    ClassDecl,
    FieldDecl,
    MethodDecl,
    Parameter,
    Variable,
    order_modifiers,
)


def create_parameter(name: str, type_text: str, annotations: list[str] | None = None) -> Parameter:
    """Create a formal parameter.

    Args:
        name: Parameter name
        type_text: Parameter type
        annotations: Annotation names (without ``@``)

    Returns:
        The parameter

    Examples:
        >>> create_parameter("val", "String", ["javax.annotation.Nonnull"]).render()
        '@javax.annotation.Nonnull String val'
    """
    return Parameter(name, type_text, list(annotations or []))


def create_field(name: str, type_text: str, final: bool = False) -> FieldDecl:
    """Create a private builder field, e.g. ``private final int x;``."""
    modifiers = ["private", "final"] if final else ["private"]
    return FieldDecl([Variable(name, type_text)], type_text, modifiers)


def create_method(
    name: str,
    return_type: str,
    parameters: list[Parameter] | None = None,
    body: list[str] | None = None,
    modifiers: list[str] | None = None,
    annotations: list[str] | None = None,
) -> MethodDecl:
    """Create a method declaration.

    Args:
        name: Method name
        return_type: Return type text (``void`` for none)
        parameters: Formal parameters
        body: Statements of the method body, one per line
        modifiers: Modifier keywords, in any order
        annotations: Method annotation names (without ``@``)

    Returns:
        The method declaration
    """
    return MethodDecl(
        name,
        parameters or [],
        return_type,
        order_modifiers(modifiers or ["public"]),
        annotations or [],
        body or [],
    )


def create_constructor(
    class_name: str,
    parameters: list[Parameter] | None = None,
    body: list[str] | None = None,
    modifiers: list[str] | None = None,
) -> MethodDecl:
    """Create a constructor declaration (a method without return type)."""
    return MethodDecl(
        class_name, parameters or [], None, order_modifiers(modifiers or ["public"]), [], body or []
    )


def create_class(name: str, modifiers: list[str] | None = None) -> ClassDecl:
    """Create an empty nested class declaration."""
    return ClassDecl(name, order_modifiers(modifiers or ["public", "static", "final"]))


def create_assignment(target: str, value: str) -> str:
    """Create an assignment statement, e.g. ``this.x = x;``."""
    return f"{target} = {value};"


def create_call(method_name: str, argument: str) -> str:
    """Create a single-argument call statement, e.g. ``setX(builder.x);``."""
    return f"{method_name}({argument});"


def create_return(expression: str) -> str:
    return f"return {expression};"


def create_return_this() -> str:
    return create_return("this")


def create_new_instance(class_name: str, arguments: list[str]) -> str:
    """Create an instance creation expression, e.g. ``new Builder(a, b)``."""
    return f"new {class_name}({', '.join(arguments)})"


def builder_class_doc(class_name: str) -> list[str]:
    return [f"{{@code {class_name}}} builder static inner class."]


def setter_doc(field_name: str, parameter_name: str) -> list[str]:
    return [
        f"Sets the {{@code {field_name}}} and returns a reference to this Builder "
        "so that the methods can be chained together.",
        f"@param {parameter_name} the {{@code {field_name}}} to set",
        "@return a reference to this Builder",
    ]


def build_method_doc(class_name: str) -> list[str]:
    return [
        f"Returns a {{@code {class_name}}} built from the parameters previously set.",
        "",
        f"@return a {{@code {class_name}}} built with parameters of this {{@code {class_name}.Builder}}",
    ]
