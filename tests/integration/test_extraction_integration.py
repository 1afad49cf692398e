"""
Integration tests: extractors wired to the ConfigManager and the CLI over
generated documents written to a temporary directory.
"""

import json

import pytest

from stream_extractor import CSVExtractor, Correlate, SkipTo, XMLExtractor
from stream_extractor.cli import main
from stream_extractor.config.config_manager import ConfigManager, reset_config_manager


PERSON_COUNT = 2000


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ('STREAM_EXTRACTOR_SETTINGS_PATH', 'STREAM_EXTRACTOR_LOG_LEVEL', 'STREAM_EXTRACTOR_ENCODING',
                 'STREAM_EXTRACTOR_CSV_DELIMITER', 'STREAM_EXTRACTOR_CSV_START_LINE'):
        monkeypatch.delenv(name, raising=False)
    reset_config_manager()
    yield
    reset_config_manager()


@pytest.fixture
def large_document(tmp_path):
    path = tmp_path / "people.xml"
    with open(path, "w", encoding="utf-8") as f:
        f.write('<?xml version="1.0" encoding="UTF-8"?>\n<Persons>\n')
        for person in range(1, PERSON_COUNT + 1):
            f.write(f'  <Person id="{person}">\n')
            f.write(f'    <Name>Name {person}</Name>\n')
            f.write('    <Addresses>\n')
            for address in range(2):
                f.write(f'      <Address><Street>{address} Street</Street><City>City {person}</City></Address>\n')
            f.write('    </Addresses>\n')
            f.write('  </Person>\n')
        f.write('</Persons>\n')
    return path


def test_large_document_correlation(large_document):
    people = {}

    def person(element, properties, data):
        people[properties['id']] = properties['name']
        return Correlate(properties['id'])

    def address(element, properties, data):
        data.append((properties['person'], properties['city']))

    extractor = XMLExtractor({
        'Persons/Person': {'map': {'id': 'string(@id)', 'name': 'string(Name)'}, 'handler': person},
        'Persons/Person/Addresses/Address': {
            'map': {'person': '#Persons/Person', 'city': 'string(City)'},
            'handler': address,
        },
    })
    rows = []

    assert extractor.extract(large_document, ConfigManager().get_xml_config(), data=rows) is True

    assert len(people) == PERSON_COUNT
    assert len(rows) == PERSON_COUNT * 2
    assert all(city == f'City {person}' for person, city in rows)
    assert extractor.get_performance_stats()['elements_matched'] == PERSON_COUNT * 3


def test_large_document_skipping(large_document):
    cities = []

    def person(element, properties, data):
        if int(properties['id']) % 2:
            return SkipTo('Persons/Person')
        return properties['id']

    extractor = XMLExtractor({
        'Persons/Person': {'map': {'id': 'string(@id)'}, 'handler': person},
        'Persons/Person/Addresses/Address': {
            'map': {'person': '#Persons/Person'},
            'handler': lambda element, properties, data: cities.append(properties['person']),
        },
    })

    extractor.extract(large_document)

    assert len(cities) == PERSON_COUNT
    assert all(int(person) % 2 == 0 for person in cities)


def test_large_document_dump(large_document):
    counts = XMLExtractor().dump(large_document)

    assert counts['Persons'] == 1
    assert counts['Persons/Person'] == PERSON_COUNT
    assert counts['Persons/Person/Addresses/Address/City'] == PERSON_COUNT * 2


def test_csv_with_settings_file(tmp_path):
    settings = tmp_path / "settings.yaml"
    settings.write_text("csv:\n  delimiter: ';'\n  start_line: 1\n  exceptions: false\n")
    source = tmp_path / "people.csv"
    source.write_text("id;name\n1;Anna\n\n2;Bob\n3\n", encoding="utf-8")
    rows = []

    extractor = CSVExtractor({
        'map': {'id': 0, 'name': 1},
        'handler': lambda row, properties, data: data.append(properties),
    })
    extractor.extract(source, ConfigManager(settings).get_csv_config(), data=rows)

    assert rows == [{'id': '1', 'name': 'Anna'}, {'id': '2', 'name': 'Bob'}, {'id': '3'}]


def test_cli_dump_generated_document(large_document, capsys):
    assert main(['dump', str(large_document), '--format', 'json']) == 0

    counts = json.loads(capsys.readouterr().out)
    assert counts['Persons/Person/Addresses'] == PERSON_COUNT
