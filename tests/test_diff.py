"""test_diff.py - change-set extraction against previous snapshots"""

import json
import shutil
import subprocess
import unittest

from base_test import BaseTestCase, snapshots

from diff_i18n_json import (
    ChangeSet,
    GitSnapshotProvider,
    diff_flat_json,
    extract_change_set,
    no_snapshot,
)


class TestDiffFlatJson(BaseTestCase):

    def test_added_and_replaced(self):
        changes = diff_flat_json({'a': '1', 'b': '2'}, {'a': '1', 'b': '3', 'c': '4'})
        self.assertEqual(changes.added, ['c'])
        self.assertEqual(changes.replaced, ['b'])
        self.assertEqual(changes.deleted, [])
        self.assertEqual(changes.changed, ['c', 'b'])

    def test_deleted(self):
        changes = diff_flat_json({'a': '1', 'b': '2'}, {'a': '1'})
        self.assertEqual(changes, ChangeSet(deleted=['b']))

    def test_identical_snapshots_are_empty(self):
        flat = {'a': '1', 'nav.home': 'Home'}
        self.assertTrue(diff_flat_json(flat, dict(flat)).is_empty())


class TestExtractChangeSet(BaseTestCase):

    def test_uses_previous_snapshot(self):
        path = self.write_json('en.json', {'a': 1, 'b': 3, 'c': 4})
        provider = snapshots({'en.json': json.dumps({'a': 1, 'b': 2})})

        changes = extract_change_set(path, provider)

        self.assertEqual(changes.added, ['c'])
        self.assertEqual(changes.replaced, ['b'])
        self.assertEqual(changes.deleted, [])

    def test_running_twice_on_unchanged_snapshot_is_empty(self):
        data = {'nav': {'home': 'Home', 'items': ['One', 'Two']}}
        path = self.write_json('en.json', data)
        provider = snapshots({'en.json': json.dumps(data)})

        self.assertTrue(extract_change_set(path, provider).is_empty())
        self.assertTrue(extract_change_set(path, provider).is_empty())

    def test_no_previous_version_means_everything_added(self):
        path = self.write_json('en.json', {'a': 'A', 'b': {'c': 'C'}})
        changes = extract_change_set(path, no_snapshot)
        self.assertEqual(changes.added, ['a', 'b.c'])
        self.assertEqual(changes.replaced, [])

    def test_force_replaces_everything_without_history(self):
        path = self.write_json('en.json', {'a': 'A', 'b': 'B'})

        def failing_provider(path):
            raise AssertionError('history must not be consulted')

        changes = extract_change_set(path, failing_provider, force_all=True)
        self.assertEqual(changes, ChangeSet(replaced=['a', 'b']))

    def test_current_file_must_exist(self):
        with self.assertRaises(FileNotFoundError):
            extract_change_set(self.tmp / 'en.json', no_snapshot)

    def test_array_values_compare_by_position(self):
        path = self.write_json('en.json', {'arr': ['b', 'a']})
        provider = snapshots({'en.json': json.dumps({'arr': ['a', 'b']})})
        self.assertEqual(extract_change_set(path, provider).replaced, ['arr.0', 'arr.1'])


@unittest.skipUnless(shutil.which('git'), 'git is not installed')
class TestGitSnapshotProvider(BaseTestCase):

    def git(self, *args):
        subprocess.run(['git', '-C', str(self.tmp), *args], check=True,
                       capture_output=True, text=True)

    def init_repo(self):
        self.git('init', '-q')
        self.git('config', 'user.email', 'dev@example.com')
        self.git('config', 'user.name', 'dev')
        self.git('config', 'commit.gpgsign', 'false')

    def test_reads_committed_version(self):
        self.init_repo()
        path = self.write_json('locales/en/common.json', {'a': '1', 'b': '2'})
        self.git('add', '.')
        self.git('commit', '-q', '-m', 'init')
        self.write_json('locales/en/common.json', {'a': '1', 'b': '3', 'c': '4'})

        changes = extract_change_set(path, GitSnapshotProvider())

        self.assertEqual(changes.added, ['c'])
        self.assertEqual(changes.replaced, ['b'])

    def test_untracked_file_is_not_found(self):
        self.init_repo()
        path = self.write_json('en.json', {'a': '1'})
        self.assertIsNone(GitSnapshotProvider()(path))

    def test_outside_repository_is_not_found(self):
        path = self.write_json('en.json', {'a': '1'})
        provider = GitSnapshotProvider(revision='no-such-revision')
        self.assertIsNone(provider(path))
        self.assertEqual(extract_change_set(path, provider).added, ['a'])

    def test_undecodable_committed_version_is_not_found(self):
        self.init_repo()
        path = self.tmp / 'en.json'
        path.write_bytes('{"a": "café"}'.encode('latin-1'))
        self.git('add', '.')
        self.git('commit', '-q', '-m', 'latin-1')
        self.write_json('en.json', {'a': 'café', 'b': 'thé'})

        self.assertIsNone(GitSnapshotProvider()(path))
        changes = extract_change_set(path, GitSnapshotProvider())
        self.assertEqual(changes.added, ['a', 'b'])
        self.assertEqual(changes.replaced, [])
