"""
Unit tests for CorrelationStore.
"""

import unittest

from stream_extractor.exceptions import UnregisteredReferenceError
from stream_extractor.mapping.correlation_store import CorrelationStore


class TestCorrelationStore(unittest.TestCase):
    """Test storing and resolving handler results by address."""

    def setUp(self):
        self.store = CorrelationStore()

    def test_put_and_get(self):
        self.store.put('Persons/Person', 1)
        self.assertEqual(self.store.get('Persons/Person'), 1)

    def test_addresses_are_canonicalized(self):
        self.store.put('/Persons/Person/', 'abc')
        self.assertEqual(self.store.get('Persons/Person'), 'abc')
        self.assertIn('/Persons/Person', self.store)

    def test_later_writes_overwrite(self):
        self.store.put('Persons/Person', 1)
        self.store.put('Persons/Person', 2)
        self.assertEqual(self.store.get('Persons/Person'), 2)
        self.assertEqual(len(self.store), 1)

    def test_missing_address(self):
        with self.assertRaises(UnregisteredReferenceError) as context:
            self.store.get('/Persons/Person')

        self.assertEqual(str(context.exception), 'Unregistered Element XPath: "/Persons/Person"')
        self.assertEqual(context.exception.address, 'Persons/Person')


if __name__ == '__main__':
    unittest.main()
