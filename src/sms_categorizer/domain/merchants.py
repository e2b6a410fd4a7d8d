"""
Known Colombian merchants and category keywords.

Both tables are plain dicts frozen behind ``MappingProxyType``. Iteration
follows insertion order, which makes the keyword layer deterministic: the
first keyword listed below that occurs in a transaction wins.
"""
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from sms_categorizer.models import Category

_MERCHANTS_BY_CATEGORY: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (Category.GROCERIES, (
        "EXITO", "ALMACENES EXITO", "CARULLA", "JUMBO", "D1", "TIENDAS D1",
        "ARA", "TIENDAS ARA", "OLIMPICA", "SUPERTIENDAS OLIMPICA",
        "ALKOSTO", "MAKRO", "HOMECENTER", "EURO", "SURTIMAX",
        "LA 14", "COLSUBSIDIO", "COORATIENDAS", "MERQUEO",
        "MAS POR MENOS", "SUPERM MAS POR MENOS",
    )),
    (Category.RESTAURANT, (
        "RAPPI", "RAPPI COLOMBIA", "IFOOD", "UBER EATS", "DOMICILIOS COM",
        "MCDONALDS", "MC DONALDS", "BURGER KING", "SUBWAY",
        "CREPES", "CREPES Y WAFFLES", "EL CORRAL", "PRESTO", "KOKORIKO",
        "DOMINOS", "DOMINOS PIZZA", "PIZZA HUT", "JENO'S PIZZA",
        "FRISBY", "PPC", "ANDRES CARNE DE RES", "ANDRES DC",
        "WOK", "ARCHIES", "TACOS Y BAR BQ",
    )),
    (Category.COFFEE, (
        "JUAN VALDEZ", "JUAN VALDEZ CAFE", "STARBUCKS", "TOSTAO", "TOSTAO CAFE",
        "OMA", "OMA CAFE", "DUNKIN", "DUNKIN DONUTS",
    )),
    (Category.TAXI_RIDESHARE, (
        "UBER", "UBER TRIP", "UBER BV", "DIDI", "DIDI CHUXING",
        "CABIFY", "BEAT", "BEAT RIDE", "INDRIVER", "PICAP",
    )),
    (Category.GAS, (
        "TERPEL", "ESTACION TERPEL", "PRIMAX", "MOBIL", "TEXACO",
        "ESSO", "BIOMAX", "PETROBRAS", "BRIO", "ZEUSS",
    )),
    (Category.TRANSMILENIO, (
        "TRANSMILENIO", "SITP", "TU LLAVE", "TULLAVE", "METRO MEDELLIN",
        "MIO CALI", "METROLINEA", "TRANSMETRO",
    )),
    (Category.UTILITIES, (
        "EPM", "CODENSA", "ENEL", "ETB", "VANTI", "GAS NATURAL",
        "ACUEDUCTO", "EAAB", "CLARO", "MOVISTAR", "TIGO", "WOM",
        "DIRECTV", "HBO", "NETFLIX", "SPOTIFY",
    )),
    (Category.EPS_HEALTH, (
        "EPS SURA", "EPS SANITAS", "NUEVA EPS", "SALUD TOTAL",
        "COMPENSAR", "FAMISANAR", "COOMEVA EPS", "MEDIMAS",
    )),
    (Category.PHARMACY, (
        "DROGUERIA", "CRUZ VERDE", "LA REBAJA", "FARMATODO",
        "DROGAS LA ECONOMIA", "LOCATEL", "AUDIFARMA",
    )),
    (Category.CUATRO_X_MIL, (
        "4X1000", "4XMIL", "CUATRO POR MIL", "GMF", "IVA",
    )),
    (Category.ADMINISTRACION, (
        "ADMINISTRACION", "ADMIN EDIFICIO", "CONJUNTO", "PROPIEDAD HORIZONTAL",
    )),
)

_KEYWORDS: tuple[tuple[str, Category], ...] = (
    # Groceries
    ("SUPERMERCADO", Category.GROCERIES),
    ("SUPERMARKET", Category.GROCERIES),
    ("TIENDA", Category.GROCERIES),
    ("MERCADO", Category.GROCERIES),
    ("MINIMARKET", Category.GROCERIES),
    ("MINIMERCADO", Category.GROCERIES),
    ("FRUVER", Category.GROCERIES),
    # Restaurants
    ("RESTAURANTE", Category.RESTAURANT),
    ("RESTAURANT", Category.RESTAURANT),
    ("PANADERIA", Category.RESTAURANT),
    ("PIZZERIA", Category.RESTAURANT),
    ("COMIDAS", Category.RESTAURANT),
    ("ASADERO", Category.RESTAURANT),
    ("COMIDA RAPIDA", Category.RESTAURANT),
    # Coffee
    ("CAFE", Category.COFFEE),
    ("COFFEE", Category.COFFEE),
    ("CAFETERIA", Category.COFFEE),
    # Transport
    ("GASOLINA", Category.GAS),
    ("COMBUSTIBLE", Category.GAS),
    ("ESTACION", Category.GAS),
    ("PEAJE", Category.TRANSMILENIO),
    ("PARQUEADERO", Category.UNCATEGORIZED),
    ("PARKING", Category.UNCATEGORIZED),
    # Rideshare
    ("TAXI", Category.TAXI_RIDESHARE),
    ("VIAJE", Category.TAXI_RIDESHARE),
    # Health
    ("DROGUERIA", Category.PHARMACY),
    ("FARMACIA", Category.PHARMACY),
    ("CLINICA", Category.EPS_HEALTH),
    ("HOSPITAL", Category.EPS_HEALTH),
    ("MEDICO", Category.EPS_HEALTH),
    ("SALUD", Category.EPS_HEALTH),
    # Utilities
    ("SERVICIOS", Category.UTILITIES),
    ("RECARGA", Category.UTILITIES),
    ("CELULAR", Category.UTILITIES),
    # Bank fees
    ("IMPUESTO", Category.CUATRO_X_MIL),
    ("GMF", Category.CUATRO_X_MIL),
)


class MerchantDictionary:
    """Read-only merchant and keyword lookup tables."""

    def __init__(
        self,
        merchants: Iterable[tuple[str, Category]],
        keywords: Iterable[tuple[str, Category]],
    ):
        self._merchants: Mapping[str, Category] = MappingProxyType(
            {name.upper(): category for name, category in merchants}
        )
        self._keywords: Mapping[str, Category] = MappingProxyType(
            {keyword.upper(): category for keyword, category in keywords}
        )
        self._names = tuple(self._merchants)

    @property
    def merchant_to_category(self) -> Mapping[str, Category]:
        return self._merchants

    @property
    def keyword_to_category(self) -> Mapping[str, Category]:
        return self._keywords

    @property
    def merchant_names(self) -> tuple[str, ...]:
        return self._names


def _default_merchants() -> list[tuple[str, Category]]:
    return [
        (name, category)
        for category, names in _MERCHANTS_BY_CATEGORY
        for name in names
    ]


DEFAULT_DICTIONARY = MerchantDictionary(_default_merchants(), _KEYWORDS)
