"""test_missing_keys.py - cross-locale key presence"""

import contextlib
import io
from unittest import mock

from base_test import BaseTestCase

import find_missing_i18n_keys
from find_missing_i18n_keys import (
    MissingKeys,
    common_missing_keys,
    count_missing_keys,
    find_missing_keys,
    locale_specific_missing_keys,
)
from i18n_locales import LocaleInfo


def make_locales():
    return [
        LocaleInfo('en', {'common.json': {'x': 'X', 'y': 'Y', 'z': 'Z'}}),
        LocaleInfo('fr', {'common.json': {'y': 'Y-fr', 'z': 'Z-fr'}}),
        LocaleInfo('de', {'common.json': {'z': 'Z-de'}}),
    ]


class TestFindMissingKeys(BaseTestCase):

    def test_missing_keys_per_locale(self):
        missing = find_missing_keys(make_locales(), 'en')
        self.assertEqual(missing, [
            MissingKeys('fr', {'common.json': ['x']}),
            MissingKeys('de', {'common.json': ['x', 'y']}),
        ])
        self.assertEqual(count_missing_keys(missing), 3)

    def test_main_locale_is_found_by_code_not_position(self):
        locales = make_locales()
        locales.reverse()
        missing = find_missing_keys(locales, 'en')
        self.assertEqual([entry.locale for entry in missing], ['de', 'fr'])

    def test_complete_locale_still_has_an_entry(self):
        locales = [
            LocaleInfo('en', {'a.json': {'k': 'v'}}),
            LocaleInfo('fr', {'a.json': {'k': 'v-fr'}}),
        ]
        self.assertEqual(find_missing_keys(locales, 'en'), [MissingKeys('fr', {})])

    def test_empty_string_counts_as_missing(self):
        # An intentionally empty translation cannot be told apart from an
        # untranslated key; both are reported.
        locales = [
            LocaleInfo('en', {'a.json': {'k': 'v', 'blank': ''}}),
            LocaleInfo('fr', {'a.json': {'k': '', 'blank': ''}}),
        ]
        self.assertEqual(find_missing_keys(locales, 'en'),
                         [MissingKeys('fr', {'a.json': ['k', 'blank']})])

    def test_unknown_main_locale(self):
        self.assertEqual(find_missing_keys(make_locales(), 'ja'), [])


class TestCommonMissingKeys(BaseTestCase):

    def test_common_and_specific(self):
        missing = find_missing_keys(make_locales(), 'en')
        common = common_missing_keys(missing)
        self.assertEqual(common, {'common.json': ['x']})

        specific = locale_specific_missing_keys(missing, common)
        self.assertEqual(specific, [
            MissingKeys('fr', {}),
            MissingKeys('de', {'common.json': ['y']}),
        ])

    def test_single_locale_has_no_common_keys(self):
        missing = [MissingKeys('fr', {'a.json': ['k']})]
        self.assertEqual(common_missing_keys(missing), {})

    def test_locale_without_gaps_empties_the_intersection(self):
        missing = [
            MissingKeys('fr', {'a.json': ['k']}),
            MissingKeys('de', {'a.json': ['k']}),
            MissingKeys('it', {}),
        ]
        self.assertEqual(common_missing_keys(missing), {})

    def test_common_keys_keep_main_order(self):
        missing = [
            MissingKeys('fr', {'a.json': ['p', 'q', 'r']}),
            MissingKeys('de', {'a.json': ['r', 'p']}),
        ]
        self.assertEqual(common_missing_keys(missing), {'a.json': ['p', 'r']})


class TestReport(BaseTestCase):

    def run_main(self, *argv):
        out = io.StringIO()
        with mock.patch('sys.argv', ['find-missing-i18n-keys', *argv]), \
                contextlib.redirect_stdout(out):
            code = find_missing_i18n_keys.main()
        return code, out.getvalue()

    def test_reports_common_and_specific_gaps(self):
        self.write_json('en/common.json', {'x': 'X', 'y': 'Y'})
        self.write_json('fr/common.json', {'y': 'Y-fr'})
        self.write_json('de/common.json', {})

        code, output = self.run_main('--dir', str(self.tmp), '--main', 'en', '--fail-on-missing')

        self.assertEqual(code, 1)
        self.assertIn('[common] common.json: 1', output)
        self.assertIn('[de] common.json: 1', output)
        self.assertIn('Missing keys: 3', output)

    def test_complete_locales_exit_zero(self):
        self.write_json('en.json', {'x': 'X'})
        self.write_json('fr.json', {'x': 'X-fr'})
        code, output = self.run_main('--dir', str(self.tmp), '--main', 'en', '--fail-on-missing')
        self.assertEqual(code, 0)
        self.assertIn('Missing keys: 0', output)
