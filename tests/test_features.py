# tests/test_features.py
from backend.utils.features import DEFAULT_ICON, extract_features, feature_icon, preview_features


def test_only_literal_true_and_first_occurrence():
    info = {"Услуги": [{"WiFi": True}, {"Parking": False}, {"WiFi": True}]}
    assert extract_features(info) == ["WiFi"]


def test_truthy_non_boolean_values_are_skipped():
    info = {"Оплата": [{"Карты": 1}, {"Наличные": "true"}, {"QR": None}, {"Терраса": True}]}
    assert extract_features(info) == ["Терраса"]


def test_malformed_entries_do_not_raise():
    info = {
        "Сломано": "не список",
        "Смесь": [42, "строка", {"a": True, "b": True}, {}, {"Завтраки": True}],
        "Пусто": None,
    }
    assert extract_features(info) == ["Завтраки"]
    assert extract_features(None) == []
    assert extract_features(["not", "a", "dict"]) == []


def test_order_is_first_seen_across_buckets():
    info = {
        "Доступность": [{"Пандус": True}],
        "Услуги": [{"Wi-Fi": True}, {"Пандус": True}],
        "Атмосфера": [{"Вид на океан": True}],
    }
    assert extract_features(info) == ["Пандус", "Wi-Fi", "Вид на океан"]


def test_full_list_is_returned_without_cap():
    info = {"Услуги": [{f"Особенность {i}": True} for i in range(12)]}
    assert len(extract_features(info)) == 12


def test_feature_icons():
    assert feature_icon("Бесплатный Wi-Fi") == "📶"
    assert feature_icon("Терраса") == "🏡"
    assert feature_icon("Парковка") == "🅿️"
    assert feature_icon("Something else") == DEFAULT_ICON


def test_preview_features_counts_hidden():
    features = [f"f{i}" for i in range(10)]
    shown, hidden = preview_features(features, 8)
    assert shown == features[:8]
    assert hidden == 2

    shown, hidden = preview_features(features[:3], 8)
    assert shown == features[:3]
    assert hidden == 0
