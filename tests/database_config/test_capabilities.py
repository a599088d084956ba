from src.database_config.capabilities import CapabilitySet, PropertyName
from tests.database_config.fakes import FakeConnection


def test_resolve_asks_connection_once_per_property():
    asked = []

    class CountingConnection(FakeConnection):
        def supports(self, property_name):
            asked.append(property_name)
            return property_name != PropertyName.MAX_DOP

    capabilities = CapabilitySet.resolve(CountingConnection(server_major_version=12))

    assert sorted(asked) == sorted(PropertyName)
    assert capabilities.server_major_version == 12
    assert capabilities.supports(PropertyName.READ_ONLY)
    assert not capabilities.supports(PropertyName.MAX_DOP)
    assert not capabilities.supports_scoped_configurations


def test_full_text_needs_sysadmin_old_version_and_installation():
    assert CapabilitySet(server_major_version=9, is_sysadmin=True, is_full_text_installed=True).can_write_full_text
    assert not CapabilitySet(server_major_version=10, is_sysadmin=True, is_full_text_installed=True).can_write_full_text
    assert not CapabilitySet(server_major_version=9, is_sysadmin=False, is_full_text_installed=True).can_write_full_text
    assert not CapabilitySet(server_major_version=9, is_sysadmin=True, is_full_text_installed=False).can_write_full_text


def test_cloud_counts_as_server_level_writer():
    assert CapabilitySet(is_cloud=True).can_write_server_level_options
    assert not CapabilitySet().can_write_server_level_options


def test_filestream_max_size_from_version_11():
    assert CapabilitySet(server_major_version=11).supports_filestream_max_size
    assert not CapabilitySet(server_major_version=10).supports_filestream_max_size


def test_all_supported_accepts_trait_overrides():
    capabilities = CapabilitySet.all_supported(is_cloud=True)

    assert capabilities.is_cloud
    assert all(capabilities.supports(name) for name in PropertyName)
