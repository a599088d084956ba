from datetime import datetime

from src.database_config.options import apply_option_bag, to_option_bag
from src.database_config.prototype import DatabaseConfigPrototype
from tests.database_config.fakes import FakeConnection, model_database


def test_bag_describes_database_filegroups_and_files(connection):
    prototype = DatabaseConfigPrototype.load(connection, "Sales")

    bag = to_option_bag(prototype)

    assert bag["name"] == "Sales"
    assert bag["owner"] == "sa"
    assert bag["databaseState"] == "Normal"
    assert bag["recoveryModel"] == "Full"
    assert bag["lastBackupDate"] == "Never"
    assert bag["fileGroupsCount"] == 2
    assert bag["fileGroups.0.name"] == "PRIMARY"
    assert bag["fileGroups.0.isDefault"] is True
    assert bag["fileGroups.1.fileGroupType"] == "RowsFileGroup"
    assert bag["databaseFilesCount"] == 3
    assert bag["databaseFiles.0.isPrimaryFile"] is True
    assert bag["databaseFiles.1.fileGroup"] == "ARCHIVE"
    assert bag["databaseFiles.1.folder"] == "D:\\Data"
    assert bag["databaseFiles.1.initialSize"] == 8
    assert bag["databaseFiles.1.autogrowth"] == "By 64 MB, unlimited"
    assert bag["databaseFiles.2.databaseFileType"] == "Log"
    assert bag["databaseFiles.2.fileGroup"] == ""
    assert "azureEdition" not in bag


def test_backup_dates_before_1900_read_as_never(connection):
    prototype = DatabaseConfigPrototype.load(connection, "Sales")
    prototype.update(
        last_backup_date=datetime(1899, 12, 30),
        last_log_backup_date=datetime(2024, 5, 1, 12, 30),
    )

    bag = to_option_bag(prototype)

    assert bag["lastBackupDate"] == "Never"
    assert bag["lastLogBackupDate"] == "2024-05-01 12:30:00"


def test_cloud_targets_include_service_tier(call_log):
    connection = FakeConnection(databases=[model_database(call_log)], is_cloud=True, log=call_log)
    prototype = DatabaseConfigPrototype.new(connection, "Orders")
    prototype.update(service_level_objective="S0")

    bag = to_option_bag(prototype)

    assert bag["azureEdition"] == ""
    assert bag["serviceLevelObjective"] == "S0"


def test_apply_names_new_files_after_database(connection):
    prototype = DatabaseConfigPrototype.new(connection)

    apply_option_bag({"name": "Orders"}, prototype)

    assert prototype.name == "Orders"
    assert [f.name for f in prototype.files] == ["Orders", "Orders_log"]


def test_apply_without_name_changes_nothing(connection):
    prototype = DatabaseConfigPrototype.new(connection, "Orders")

    apply_option_bag({}, prototype)

    assert prototype.name == "Orders"
