from domain.models import AddressComponent, Language, RawProviderPlace
from services.place_merger import merge_places, pick_city


def _raw(place_id, language, name=None, lat=24.71, lng=46.67, **kwargs):
    return RawProviderPlace(
        language=language,
        place_id=place_id,
        name=name,
        lat=lat,
        lng=lng,
        **kwargs,
    )


def test_bilingual_fields_fill_each_other():
    en = [_raw("p1", Language.EN, name="Riyadh Roast", rating=4.5)]
    ar = [_raw("p1", Language.AR, name="محمصة الرياض", rating=3.0, review_count=12)]

    [place] = merge_places(en, ar)

    assert place.external_place_id == "p1"
    assert place.name_en == "Riyadh Roast"
    assert place.name_ar == "محمصة الرياض"
    # anchor wins; overlay only fills gaps
    assert place.rating == 4.5
    assert place.review_count == 12


def test_anchor_coordinates_are_not_overwritten():
    en = [_raw("p1", Language.EN, name="A", lat=24.1, lng=46.1)]
    ar = [_raw("p1", Language.AR, name="أ", lat=99.0, lng=99.0)]

    [place] = merge_places(en, ar)

    assert (place.lat, place.lng) == (24.1, 46.1)


def test_anchor_without_coordinates_is_dropped_and_overlay_cannot_rescue_it():
    en = [_raw("p1", Language.EN, name="A", lat=None, lng=None)]
    ar = [_raw("p1", Language.AR, name="أ", lat=24.2, lng=46.2)]

    [place] = merge_places(en, ar)

    # the overlay creates its own entry; the anchor's name never made it in
    assert place.name_en is None
    assert place.name_ar == "أ"
    assert (place.lat, place.lng) == (24.2, 46.2)


def test_overlay_only_result_needs_coordinates():
    ar = [
        _raw("with-coords", Language.AR, name="مقهى", lat=24.3, lng=46.3),
        _raw("no-coords", Language.AR, name="بدون", lat=None, lng=None),
    ]

    merged = merge_places([], ar)

    assert [p.external_place_id for p in merged] == ["with-coords"]
    assert merged[0].name_ar == "مقهى"
    assert merged[0].name_en is None


def test_results_without_id_are_dropped():
    merged = merge_places([_raw(None, Language.EN, name="Nameless")], [_raw("", Language.AR, name="x")])
    assert merged == []


def test_every_output_is_valid():
    en = [
        _raw("ok", Language.EN, name="Fine"),
        _raw("nan", Language.EN, name="Broken", lat=float("nan")),
    ]
    merged = merge_places(en, None)
    assert [p.external_place_id for p in merged] == ["ok"]
    assert all(p.is_valid for p in merged)


def test_duplicates_within_a_language_collapse():
    en = [_raw("p1", Language.EN, name="First"), _raw("p1", Language.EN, name="Second")]
    [place] = merge_places(en, [])
    assert place.name_en == "First"


def test_membership_does_not_depend_on_order():
    en = [_raw("a", Language.EN, name="A"), _raw("b", Language.EN, name="B")]
    ar = [_raw("c", Language.AR, name="ج", lat=24.4, lng=46.4)]
    forward = {p.external_place_id for p in merge_places(en, ar)}
    backward = {p.external_place_id for p in merge_places(list(reversed(en)), ar)}
    assert forward == backward == {"a", "b", "c"}


def test_city_per_language():
    en = [_raw("p1", Language.EN, name="A", vicinity="King Fahd Rd, Riyadh")]
    ar = [_raw("p1", Language.AR, name="أ", vicinity="طريق الملك فهد، الرياض")]
    [place] = merge_places(en, ar)
    assert place.city_en == "Riyadh"
    assert place.city_ar == "الرياض"


def test_pick_city_prefers_address_components():
    place = _raw(
        "p1",
        Language.EN,
        vicinity="Olaya St, Somewhere",
        address_components=[
            AddressComponent(long_name="Riyadh Province", types=["administrative_area_level_1"]),
            AddressComponent(long_name="Riyadh", types=["locality", "political"]),
        ],
    )
    assert pick_city(place) == "Riyadh"


def test_pick_city_single_segment_vicinity_is_not_a_city():
    assert pick_city(_raw("p1", Language.EN, vicinity="Olaya St")) is None
