"""Per-language profiles: casing, error idiom, byte type and runtime pattern.

Profiles are immutable and the registry is a read-only mapping built once,
so backends running on different threads can share it freely.
"""

import keyword
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

from .errors import UnknownLanguageError
from .util import (
    to_camel_case,
    to_flat_case,
    to_kebab_case,
    to_pascal_case,
    to_snake_case,
    to_upper_snake_case,
)


class Casing(StrEnum):
    CAMEL = "camelCase"
    PASCAL = "PascalCase"
    SNAKE = "snake_case"
    UPPER_SNAKE = "UPPER_SNAKE_CASE"
    KEBAB = "kebab-case"
    FLAT = "flatcase"


class ErrorIdiom(StrEnum):
    EXCEPTIONS = "exceptions"
    ERROR_RETURNS = "error-returns"
    RESULT_TYPES = "result-types"


class AsyncPattern(StrEnum):
    ASYNCIO = "asyncio"
    PROMISES = "promises"
    GOROUTINES = "goroutines"
    TOKIO = "tokio"


_CASERS: Mapping[Casing, Callable[[str], str]] = MappingProxyType(
    {
        Casing.CAMEL: to_camel_case,
        Casing.PASCAL: to_pascal_case,
        Casing.SNAKE: to_snake_case,
        Casing.UPPER_SNAKE: to_upper_snake_case,
        Casing.KEBAB: to_kebab_case,
        Casing.FLAT: to_flat_case,
    }
)


def apply_casing(casing: Casing, *parts: str) -> str:
    """Join name parts and render them in the given casing."""
    return _CASERS[casing](" ".join(parts))


@dataclass(frozen=True)
class NamingRules:
    types: Casing
    functions: Casing
    variables: Casing
    constants: Casing
    private: Casing
    files: Casing
    members: Casing | None = None
    private_prefix: str = ""


@dataclass(frozen=True)
class LanguageProfile:
    """How one target language spells identifiers and reports errors."""

    language: str
    display_name: str
    file_extension: str
    naming: NamingRules
    error_idiom: ErrorIdiom
    bytes_type: str
    async_pattern: AsyncPattern
    test_framework: str
    reserved_words: frozenset[str] = frozenset()
    reserved_format: str = "{}_"
    aliases: tuple[str, ...] = ()
    # Reserved words the primary escape cannot apply to
    fallback_reserved: frozenset[str] = field(default_factory=frozenset)

    def escape(self, name: str) -> str:
        if name in self.fallback_reserved:
            return f"{name}_"
        if name in self.reserved_words:
            return self.reserved_format.format(name)
        if name and name[0].isdigit():
            return f"_{name}"
        return name

    def type_name(self, *parts: str) -> str:
        return self.escape(apply_casing(self.naming.types, *parts))

    def function_name(self, *parts: str) -> str:
        return self.escape(apply_casing(self.naming.functions, *parts))

    def variable_name(self, *parts: str) -> str:
        return self.escape(apply_casing(self.naming.variables, *parts))

    def member_name(self, *parts: str) -> str:
        """Name of a field on a generated message type."""
        return self.escape(apply_casing(self.naming.members or self.naming.variables, *parts))

    def constant_name(self, *parts: str) -> str:
        return self.escape(apply_casing(self.naming.constants, *parts))

    def private_name(self, *parts: str) -> str:
        return self.naming.private_prefix + apply_casing(self.naming.private, *parts)

    def file_name(self, *parts: str, suffix: str | None = None) -> str:
        stem = apply_casing(self.naming.files, *parts)
        return f"{stem}{suffix if suffix is not None else self.file_extension}"


class ProfileRegistry(Mapping[str, LanguageProfile]):
    """Read-only lookup of profiles by language name or alias."""

    def __init__(self, profiles: Iterable[LanguageProfile]):
        by_name: dict[str, LanguageProfile] = {}
        aliases: dict[str, str] = {}
        for profile in profiles:
            if profile.language in by_name:
                raise ValueError(f"Duplicate language profile {profile.language!r}")
            by_name[profile.language] = profile
            for alias in profile.aliases:
                aliases[alias] = profile.language
        self._profiles = MappingProxyType(by_name)
        self._aliases = MappingProxyType(aliases)

    def __getitem__(self, language: str) -> LanguageProfile:
        key = language.lower()
        return self._profiles[self._aliases.get(key, key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def resolve(self, language: str) -> LanguageProfile:
        try:
            return self[language]
        except KeyError:
            known = ", ".join(sorted(self._profiles))
            raise UnknownLanguageError(f"Unknown language: {language} (known: {known})") from None

    @classmethod
    def builtin(cls) -> "ProfileRegistry":
        return cls([PYTHON, TYPESCRIPT, GO, RUST])


PYTHON = LanguageProfile(
    language="python",
    display_name="Python",
    file_extension=".py",
    naming=NamingRules(
        types=Casing.PASCAL,
        functions=Casing.SNAKE,
        variables=Casing.SNAKE,
        constants=Casing.UPPER_SNAKE,
        private=Casing.SNAKE,
        files=Casing.SNAKE,
        private_prefix="_",
    ),
    error_idiom=ErrorIdiom.EXCEPTIONS,
    bytes_type="bytes",
    async_pattern=AsyncPattern.ASYNCIO,
    test_framework="pytest+hypothesis",
    reserved_words=frozenset(keyword.kwlist) | frozenset(keyword.softkwlist),
    reserved_format="{}_",
    aliases=("py",),
)

TYPESCRIPT = LanguageProfile(
    language="typescript",
    display_name="TypeScript",
    file_extension=".ts",
    naming=NamingRules(
        types=Casing.PASCAL,
        functions=Casing.CAMEL,
        variables=Casing.CAMEL,
        constants=Casing.UPPER_SNAKE,
        private=Casing.CAMEL,
        files=Casing.KEBAB,
    ),
    error_idiom=ErrorIdiom.EXCEPTIONS,
    bytes_type="Uint8Array",
    async_pattern=AsyncPattern.PROMISES,
    test_framework="vitest+fast-check",
    reserved_words=frozenset(
        """break case catch class const continue debugger default delete do else enum
        export extends false finally for function if import in instanceof new null return
        super switch this throw true try typeof var void while with as implements interface
        let package private protected public static yield await""".split()
    ),
    reserved_format="{}_",
    aliases=("ts",),
)

GO = LanguageProfile(
    language="go",
    display_name="Go",
    file_extension=".go",
    naming=NamingRules(
        types=Casing.PASCAL,
        functions=Casing.PASCAL,
        variables=Casing.CAMEL,
        constants=Casing.PASCAL,
        private=Casing.CAMEL,
        files=Casing.SNAKE,
        members=Casing.PASCAL,
    ),
    error_idiom=ErrorIdiom.ERROR_RETURNS,
    bytes_type="[]byte",
    async_pattern=AsyncPattern.GOROUTINES,
    test_framework="testing+testing/quick",
    reserved_words=frozenset(
        """break case chan const continue default defer else fallthrough for func go goto
        if import interface map package range return select struct switch type var""".split()
    ),
    reserved_format="{}_",
    aliases=("golang",),
)

RUST = LanguageProfile(
    language="rust",
    display_name="Rust",
    file_extension=".rs",
    naming=NamingRules(
        types=Casing.PASCAL,
        functions=Casing.SNAKE,
        variables=Casing.SNAKE,
        constants=Casing.UPPER_SNAKE,
        private=Casing.SNAKE,
        files=Casing.SNAKE,
    ),
    error_idiom=ErrorIdiom.RESULT_TYPES,
    bytes_type="Vec<u8>",
    async_pattern=AsyncPattern.TOKIO,
    test_framework="proptest",
    reserved_words=frozenset(
        """as async await break const continue dyn else enum extern false fn for if impl in
        let loop match mod move mut pub ref return static struct trait true type unsafe use
        where while abstract become box do final macro override priv try typeof unsized
        virtual yield""".split()
    ),
    reserved_format="r#{}",
    aliases=("rs",),
    fallback_reserved=frozenset({"self", "Self", "super", "crate"}),
)
