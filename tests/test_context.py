import pytest

from gotenberg.context import Context, ModuleLoadError
from gotenberg.flags import FlagSet, ParsedFlags
from gotenberg.modules import ModuleDescriptor, Provisioner, Validator


class _ProvisionedModule:
    def __init__(self, error=None):
        self.error = error
        self.provision_calls = 0
        self.seen_ctx = None

    def descriptor(self):
        return ModuleDescriptor(id="foo", new=lambda: self)

    def provision(self, ctx):
        self.provision_calls += 1
        self.seen_ctx = ctx
        if self.error is not None:
            raise self.error


class _ValidatedModule:
    def __init__(self, error=None):
        self.error = error

    def descriptor(self):
        return ModuleDescriptor(id="foo", new=lambda: self)

    def validate(self):
        if self.error is not None:
            raise self.error


def test_parsed_flags_returns_given_flags():
    fs = FlagSet("tests")
    fs.add_string("foo", "bar", "")
    flags = ParsedFlags(fs)
    ctx = Context(flags, None)
    assert ctx.parsed_flags() is flags
    assert ctx.parsed_flags().must_string("foo") == "bar"


def test_module_provision_error():
    mod = _ProvisionedModule(RuntimeError("foo"))
    ctx = Context(ParsedFlags(), [mod.descriptor()])
    with pytest.raises(ModuleLoadError, match="get module: provision module foo: foo"):
        ctx.module(Provisioner)


def test_module_two_instead_of_one():
    mod = _ProvisionedModule()
    ctx = Context(ParsedFlags(), [mod.descriptor(), mod.descriptor()])
    with pytest.raises(ModuleLoadError, match="one and only one Provisioner module"):
        ctx.module(Provisioner)


def test_module_success():
    mod = _ProvisionedModule()
    ctx = Context(ParsedFlags(), [mod.descriptor()])
    assert ctx.module(Provisioner) is mod
    assert mod.seen_ctx is ctx


def test_module_none_matching():
    mod = _ValidatedModule()
    ctx = Context(ParsedFlags(), [mod.descriptor()])
    with pytest.raises(ModuleLoadError, match="one and only one"):
        ctx.module(Provisioner)


def test_modules_provision_error():
    mod = _ProvisionedModule(RuntimeError("foo"))
    ctx = Context(ParsedFlags(), [mod.descriptor()])
    with pytest.raises(ModuleLoadError, match="provision module foo"):
        ctx.modules(Provisioner)


def test_modules_two_descriptors_same_id_provisioned_once():
    mod = _ProvisionedModule()
    ctx = Context(ParsedFlags(), [mod.descriptor(), mod.descriptor()])
    assert ctx.modules(Provisioner) == [mod, mod]
    assert mod.provision_calls == 1


def test_modules_one_module():
    mod = _ProvisionedModule()
    ctx = Context(ParsedFlags(), [mod.descriptor()])
    assert ctx.modules(Provisioner) == [mod]


def test_modules_cached_between_calls():
    mod = _ProvisionedModule()
    ctx = Context(ParsedFlags(), [mod.descriptor()])
    ctx.modules(Provisioner)
    ctx.modules(Provisioner)
    assert mod.provision_calls == 1


def test_modules_filters_by_kind():
    mod = _ProvisionedModule()
    ctx = Context(ParsedFlags(), [mod.descriptor()])
    assert ctx.modules(Validator) == []


def test_modules_no_descriptors():
    assert Context(ParsedFlags(), None).modules(Provisioner) == []


def test_modules_validation_error():
    mod = _ValidatedModule(RuntimeError("foo"))
    ctx = Context(ParsedFlags(), [mod.descriptor()])
    with pytest.raises(ModuleLoadError, match="validate module foo: foo"):
        ctx.modules(Validator)


def test_modules_validation_success():
    mod = _ValidatedModule()
    ctx = Context(ParsedFlags(), [mod.descriptor()])
    assert ctx.modules(Validator) == [mod]


def test_failed_module_is_not_cached():
    mod = _ProvisionedModule(RuntimeError("foo"))
    ctx = Context(ParsedFlags(), [mod.descriptor()])
    with pytest.raises(ModuleLoadError):
        ctx.modules(Provisioner)
    mod.error = None
    assert ctx.modules(Provisioner) == [mod]
    assert mod.provision_calls == 2