import importlib

mod = "schemacheck"
class LazyLoader:
    """
    Lazy loader for the schemacheck functions to speed up startup time.
    """
    def __init__(self, mappings):
        self._modules = {}
        self._mappings = mappings

    def _load_module(self, module_name):
        if module_name not in self._modules:
            self._modules[module_name] = importlib.import_module(module_name)
        return self._modules[module_name]

    def __getattr__(self, item):
        if item in self._mappings:
            module_name, attr_name = self._mappings[item]
            module = self._load_module(module_name)
            return getattr(module, attr_name)
        try:
            return self._load_module(f"{mod}.{item}")
        except ModuleNotFoundError as e:
            if e.name != f"{mod}.{item}":
                raise
            raise AttributeError(f"module '{mod}' has no attribute '{item}'") from e

# Define the public names and their corresponding module paths
_mappings = {
    "parse_json": (f"{mod}.document", "parse_json"),
    "load_json": (f"{mod}.document", "load_json"),
    "ParseError": (f"{mod}.document", "ParseError"),
    "ReferenceRegistry": (f"{mod}.registry", "ReferenceRegistry"),
    "SchemaLoader": (f"{mod}.loader", "SchemaLoader"),
    "load_schema": (f"{mod}.loader", "load_schema"),
    "load_schema_file": (f"{mod}.loader", "load_schema_file"),
    "SchemaLoadError": (f"{mod}.loader", "SchemaLoadError"),
    "UnresolvedReferenceError": (f"{mod}.loader", "UnresolvedReferenceError"),
    "Validator": (f"{mod}.validator", "Validator"),
    "is_valid": (f"{mod}.validator", "is_valid"),
    "check": (f"{mod}.validator", "check"),
    "Violation": (f"{mod}.report", "Violation"),
    "ValidationError": (f"{mod}.report", "ValidationError"),
    "validate_instance": (f"{mod}.validate", "validate_instance"),
    "validate_file": (f"{mod}.validate", "validate_file"),
}

_lazy_loader = LazyLoader(_mappings)

def __getattr__(name):
    return getattr(_lazy_loader, name)
