import pytest
from crudsql.exceptions import ConfigurationError
from crudsql.options import DatabaseOptions, iterdict_data_loader
from crudsql.options import pandas_data_loader


def test_init_defaults():
    """Test default initialization"""
    options = DatabaseOptions()

    assert options.drivername == 'mysql'
    assert options.host == 'localhost'
    assert options.username == 'root'
    assert options.password == ''
    assert options.database == ''
    assert options.charset == 'utf8mb4'
    assert options.port == 3306
    assert options.timeout == 0
    assert options.log_errors is True
    assert options.log_file == 'logs/database_errors.log'
    assert options.strict_identifiers is True
    assert options.data_loader == iterdict_data_loader


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        DatabaseOptions(drivername='postgresql')

    with pytest.raises(ConfigurationError):
        DatabaseOptions(drivername='mysql', host='')

    with pytest.raises(ConfigurationError):
        DatabaseOptions(port=70000)

    with pytest.raises(ConfigurationError):
        DatabaseOptions(port='abc')

    with pytest.raises(ConfigurationError):
        DatabaseOptions(timeout=-1)


def test_sqlite_needs_no_host():
    options = DatabaseOptions(drivername='sqlite', host='', username='')
    assert options.database == ''


def test_string_port_coerced():
    assert DatabaseOptions(port='3307').port == 3307


def test_load_from_mapping_with_overrides():
    options = DatabaseOptions.load({'drivername': 'sqlite', 'database': 'a.db'}, database='b.db')
    assert options.drivername == 'sqlite'
    assert options.database == 'b.db'


def test_load_none_values_use_defaults():
    options = DatabaseOptions.load({'host': None, 'port': None})
    assert options.host == 'localhost'
    assert options.port == 3306


def test_load_instance_copied():
    options = DatabaseOptions(drivername='sqlite')
    loaded = DatabaseOptions.load(options)
    assert loaded is not options
    assert loaded == options
    copy = DatabaseOptions.load(options, database='x.db')
    assert copy is not options
    assert copy.database == 'x.db'


def test_load_unknown_key():
    with pytest.raises(ConfigurationError, match='Unknown option'):
        DatabaseOptions.load({'hostname': 'db'})


def test_load_rejects_other_types():
    with pytest.raises(ConfigurationError):
        DatabaseOptions.load(['sqlite'])


def test_iterdict_data_loader():
    rows = [{'a': 1}, {'a': 2}]
    assert iterdict_data_loader(rows, ['a']) == rows
    assert iterdict_data_loader([], ['a']) == []


def test_pandas_data_loader():
    df = pandas_data_loader([{'a': 1, 'b': 'x'}], ['a', 'b'])
    assert list(df.columns) == ['a', 'b']
    assert df.iloc[0]['b'] == 'x'


def test_pandas_data_loader_empty_keeps_columns():
    df = pandas_data_loader([], ['a', 'b'])
    assert df.empty
    assert list(df.columns) == ['a', 'b']
