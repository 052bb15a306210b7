"""Resource records, errors and the bytecode compiler boundary."""

from resources.errors import (
    CompileError,
    DuplicateResourceError,
    IndexFormatError,
    MissingFilterFileError,
    ResourceError,
    ResourceTooLargeError,
    SourceTreeError,
    ValidationError,
)
from resources.models import (
    ExtensionModule,
    ModuleBytecode,
    ModuleSource,
    PackageDistributionResource,
    PackageResource,
    ResourceKey,
    ResourceRecord,
    SharedLibrary,
    resource_key,
)

__all__ = [
    "CompileError",
    "DuplicateResourceError",
    "ExtensionModule",
    "IndexFormatError",
    "MissingFilterFileError",
    "ModuleBytecode",
    "ModuleSource",
    "PackageDistributionResource",
    "PackageResource",
    "ResourceError",
    "ResourceKey",
    "ResourceRecord",
    "ResourceTooLargeError",
    "SharedLibrary",
    "SourceTreeError",
    "ValidationError",
    "resource_key",
]
