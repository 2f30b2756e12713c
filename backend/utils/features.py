# backend/utils/features.py
"""
Особенности заведения из additionalInfo выгрузки.

Структура: {"Услуги": [{"Терраса": true}, {"Wi-Fi": true}], "Оплата": [...]}
"""

from typing import Any, List, Mapping, Sequence, Tuple


# Ключевые слова -> значок. Проверяются по порядку, первое совпадение выигрывает.
FEATURE_ICONS = [
    (('wifi', 'wi-fi', 'вай-фай'), '📶'),
    (('терраса', 'терасса', 'terrace'), '🏡'),
    (('парковка', 'parking'), '🅿️'),
    (('кондиционер', 'air conditioning'), '❄️'),
    (('бар', 'bar'), '🍸'),
    (('вид', 'view'), '🌅'),
    (('пляж', 'beach'), '🏖️'),
    (('бассейн', 'pool'), '🏊'),
    (('музыка', 'music'), '🎵'),
    (('веган', 'vegan'), '🌱'),
    (('детск', 'kid'), '👶'),
    (('карт', 'card'), '💳'),
    (('достав', 'delivery'), '🚚'),
    (('завтрак', 'breakfast'), '🍳'),
    (('кофе', 'coffee'), '☕'),
    (('коктейл', 'cocktail'), '🍹'),
    (('улица', 'street', 'outdoor'), '🌳'),
]
DEFAULT_ICON = '✨'


def extract_features(additional_info: Any) -> List[str]:
    """
    Все особенности со значением ровно True, без повторов, в порядке появления.

    Обрезка до 8-9 штук делается при отрисовке (preview_features),
    здесь возвращается полный список. Битые записи пропускаются.
    """
    if not isinstance(additional_info, Mapping):
        return []

    features: List[str] = []
    seen = set()
    for section in additional_info.values():
        if not isinstance(section, list):
            continue
        for item in section:
            if not isinstance(item, Mapping) or len(item) != 1:
                continue
            (key, value), = item.items()
            # Только булево True: 1, "true" и прочее не считаются
            if value is not True or not isinstance(key, str):
                continue
            if key not in seen:
                seen.add(key)
                features.append(key)
    return features


def feature_icon(feature: str) -> str:
    lower = feature.lower()
    for keywords, icon in FEATURE_ICONS:
        if any(keyword in lower for keyword in keywords):
            return icon
    return DEFAULT_ICON


def preview_features(features: Sequence[str], limit: int) -> Tuple[List[str], int]:
    """Первые limit особенностей и сколько скрыто под кнопкой "+N" """
    shown = list(features[:limit])
    return shown, max(len(features) - limit, 0)
