import pytest

from voice_agent.agent.nodes.router import extract_entities


def test_spanish_booking_sentence():
    entities = extract_entities("Quiero reservar una mesa para 4 personas mañana a las 8 de la noche, a nombre de Ana")
    assert entities == {"date": "mañana", "time": "20:00", "guests": 4, "name": "Ana"}


def test_english_booking_sentence():
    entities = extract_entities("Table for two tomorrow at 7:30 pm, my name is John Smith")
    assert entities == {"date": "tomorrow", "time": "19:30", "guests": 2, "name": "John Smith"}


def test_empty_input_has_no_entities():
    assert extract_entities("") == {}
    assert extract_entities(None) == {}
    assert extract_entities("hola") == {}


@pytest.mark.parametrize(
    "utterance, expected",
    [
        ("el 15 de mayo", "15/05"),
        ("para el 12/05/2025", "12/05/2025"),
        ("el viernes", "viernes"),
        ("on march 3rd", "03/03"),
        ("pasado mañana", "pasado mañana"),
        ("tomorrow at 8pm", "tomorrow"),
    ],
)
def test_dates(utterance, expected):
    assert extract_entities(utterance)["date"] == expected


@pytest.mark.parametrize(
    "utterance, expected",
    [
        ("a las 8 y media", "08:30"),
        ("a las 3 de la tarde", "15:00"),
        ("a las 5", "17:00"),
        ("at 7 in the evening", "19:00"),
        ("at 12 am", "00:00"),
        ("a las 21:15", "21:15"),
    ],
)
def test_times(utterance, expected):
    assert extract_entities(utterance)["time"] == expected


def test_guests_from_for_phrase_ignores_times():
    entities = extract_entities("reserva para 3 a las 9")
    assert entities["guests"] == 3
    assert entities["time"] == "09:00"
    assert "guests" not in extract_entities("para las 8:30")


def test_guests_from_number_words():
    assert extract_entities("somos cinco personas")["guests"] == 5


def test_phone_numbers():
    assert extract_entities("mi teléfono es 55 1234 5678")["phone"] == "5512345678"
    assert extract_entities("call me at +34 600 123 456")["phone"] == "+34600123456"


def test_name_stops_at_connector():
    assert extract_entities("a nombre de María para las 9")["name"] == "María"
