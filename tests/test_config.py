"""Tests for option resolution and validation."""

import logging
from unittest.mock import MagicMock

import pytest
import yaml

from digikam_select.config import (
    Config,
    TransferMode,
    Verbosity,
    build_options,
    parse_tags,
    resolve_verbosity,
)
from digikam_select.exceptions import ConfigurationError


def no_converter_errors(binary):
    return []


@pytest.fixture
def cli_values(digikam_db, output_dir):
    def _values(**overrides):
        values = {'input': str(digikam_db), 'output': str(output_dir)}
        values.update(overrides)
        return values
    return _values


@pytest.fixture
def write_config(tmp_path):
    def _write(data):
        path = tmp_path / 'digikam-select.yml'
        with open(path, 'w') as f:
            yaml.dump(data, f)
        return Config(str(path))
    return _write


class TestBuildOptions:

    def test_defaults(self, cli_values, digikam_db, output_dir):
        options = build_options(cli_values())

        assert options.input_db == digikam_db
        assert options.output_dir == output_dir
        assert options.mode is TransferMode.COPY
        assert options.tags == frozenset()
        assert options.min_rating == 0
        assert options.album is None
        assert options.albums is True
        assert not (options.force or options.sync or options.dry_run or options.interactive)
        assert options.verbosity is Verbosity.NORMAL

    def test_options_are_immutable(self, cli_values):
        options = build_options(cli_values())

        with pytest.raises(AttributeError):
            options.force = True

    @pytest.mark.parametrize('name,mode', [
        ('copy', TransferMode.COPY),
        ('link', TransferMode.HARDLINK),
        ('hardlink', TransferMode.HARDLINK),
        ('symlink', TransferMode.SYMLINK),
        ('SymLink', TransferMode.SYMLINK),
    ])
    def test_mode_names(self, cli_values, name, mode):
        assert build_options(cli_values(mode=name)).mode is mode

    def test_selection_values(self, cli_values):
        options = build_options(cli_values(
            tags='vacation, sea,,', minrating='3', album='Holiday', no_albums=True
        ))

        assert options.tags == frozenset({'vacation', 'sea'})
        assert options.min_rating == 3
        assert options.album == 'Holiday'
        assert options.albums is False

    def test_compress_implies_convert(self, cli_values):
        check = MagicMock(return_value=[])
        options = build_options(
            cli_values(mode='copy', compress='-quality 80', convert_bin='/bin/true'),
            converter_check=check,
        )

        assert options.mode is TransferMode.CONVERT
        assert options.convert_args == ('-quality', '80')
        check.assert_called_once_with('/bin/true')

    def test_conversion_options_are_split_shell_style(self, cli_values):
        options = build_options(
            cli_values(compress="-quality 80 -comment 'my trip'"),
            converter_check=no_converter_errors,
        )

        assert options.convert_args == ('-quality', '80', '-comment', 'my trip')

    def test_unbalanced_quote_in_conversion_options_is_a_configuration_error(self, cli_values):
        with pytest.raises(ConfigurationError) as exc_info:
            build_options(cli_values(compress="-quality '80"), converter_check=no_converter_errors)

        assert any('Cannot parse conversion options' in e for e in exc_info.value.errors)

    def test_conversion_options_ignored_outside_convert_mode(self, cli_values):
        options = build_options(cli_values(mode='symlink'))

        assert options.convert_args == ()

    def test_converter_not_checked_for_other_modes(self, cli_values):
        check = MagicMock(return_value=['should not be called'])

        build_options(cli_values(mode='symlink'), converter_check=check)

        check.assert_not_called()

    def test_missing_converter_is_a_configuration_error(self, cli_values, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            build_options(cli_values(compress='-quality 80',
                                     convert_bin=str(tmp_path / 'no-such-convert')))

        assert any('not found' in error for error in exc_info.value.errors)

    def test_all_errors_are_collected(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            build_options({
                'input': str(tmp_path / 'missing.db'),
                'output': str(tmp_path / 'missing-dir'),
                'mode': 'teleport',
                'minrating': 'lots',
            })

        errors = exc_info.value.errors
        assert len(errors) == 4
        assert any('not accessible' in e for e in errors)
        assert any('not writable' in e for e in errors)
        assert any("teleport" in e for e in errors)
        assert any('integer' in e for e in errors)

    def test_required_paths(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_options({})

        assert len(exc_info.value.errors) == 2

    def test_rating_out_of_range(self, cli_values):
        with pytest.raises(ConfigurationError, match='between 0 and 5'):
            build_options(cli_values(minrating=6))

    def test_output_must_be_a_directory(self, cli_values, digikam_db):
        with pytest.raises(ConfigurationError, match='not writable'):
            build_options(cli_values(output=str(digikam_db)))


class TestConfigFile:

    def test_values_come_from_yaml(self, write_config, digikam_db, output_dir):
        config = write_config({
            'digikam_select': {
                'input': str(digikam_db),
                'output': str(output_dir),
                'mode': 'symlink',
                'albums': False,
                'force': True,
                'selection': {'tags': ['vacation', 'home'], 'minrating': 2, 'album': '2017'},
            },
            'logging': {'level': 'verbose', 'file': '/tmp/digikam-select.log'},
        })

        options = build_options({}, config)

        assert options.mode is TransferMode.SYMLINK
        assert options.albums is False
        assert options.force is True
        assert options.tags == frozenset({'vacation', 'home'})
        assert options.min_rating == 2
        assert options.album == '2017'
        assert options.verbosity is Verbosity.VERBOSE
        assert config.get_log_file() == '/tmp/digikam-select.log'

    def test_log_level_key_sets_verbosity(self, write_config, cli_values):
        config = write_config({'logging': {'level': 'quiet'}})

        options = build_options(cli_values(), config)

        assert config.get_verbosity() == 'quiet'
        assert options.verbosity is Verbosity.QUIET

    def test_command_line_overrides_yaml(self, write_config, cli_values):
        config = write_config({'digikam_select': {'mode': 'symlink', 'selection': {'minrating': 2}}})

        options = build_options(cli_values(mode='copy', minrating='4', quiet=True), config)

        assert options.mode is TransferMode.COPY
        assert options.min_rating == 4
        assert options.verbosity is Verbosity.QUIET

    def test_dot_notation_get(self, write_config):
        config = write_config({'digikam_select': {'selection': {'album': 'x'}}})

        assert config.get('digikam_select.selection.album') == 'x'
        assert config.get('digikam_select.selection.missing', 'dflt') == 'dflt'
        assert config.option('selection.album') == 'x'

    def test_no_file_means_empty_config(self):
        config = Config(search=False)

        assert config.config_path is None
        assert config.config == {}

    def test_broken_yaml_is_a_configuration_error(self, tmp_path):
        path = tmp_path / 'broken.yml'
        path.write_text('digikam_select: [unclosed\n')

        with pytest.raises(ConfigurationError):
            Config(str(path))

    def test_standard_location_is_found(self, tmp_path, monkeypatch):
        (tmp_path / 'digikam-select.yml').write_text('digikam_select:\n  mode: symlink\n')
        monkeypatch.chdir(tmp_path)

        config = Config()

        assert config.option('mode') == 'symlink'


class TestHelpers:

    def test_parse_tags(self):
        assert parse_tags(None) == frozenset()
        assert parse_tags('') == frozenset()
        assert parse_tags('a,b, c') == frozenset({'a', 'b', 'c'})
        assert parse_tags(['a', ' ', 'b']) == frozenset({'a', 'b'})

    @pytest.mark.parametrize('verbose,quiet,configured,expected', [
        (0, False, None, Verbosity.NORMAL),
        (1, False, None, Verbosity.VERBOSE),
        (2, False, None, Verbosity.DEBUG),
        (5, False, None, Verbosity.DEBUG),
        (2, True, None, Verbosity.QUIET),
        (0, False, 'debug', Verbosity.DEBUG),
        (0, False, 'chatty', Verbosity.NORMAL),
    ])
    def test_resolve_verbosity(self, verbose, quiet, configured, expected):
        assert resolve_verbosity(verbose, quiet, configured) is expected

    def test_verbosity_log_levels(self):
        assert Verbosity.QUIET.log_level == logging.ERROR
        assert Verbosity.NORMAL.log_level == logging.INFO
        assert Verbosity.VERBOSE.log_level == logging.DEBUG
