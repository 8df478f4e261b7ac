from sarkari_pulse.services.scraper.extractor import extract, extract_details, extract_total, scan_keyword_lines
from sarkari_pulse.services.scraper.fetcher import RawPayload
from sarkari_pulse.services.scraper.source_table import get_source_profile


MYSCHEME = get_source_profile("myscheme")
DBT = get_source_profile("dbt_bharat")


def json_payload(data):
    return RawPayload(kind="json", url="https://api.example/search", json=data)


def html_payload(html, url="https://dbt.example/list"):
    return RawPayload(kind="html", url=url, text=html)


def test_search_api_items_with_fields_wrapper():
    payload = json_payload({
        "data": {
            "hits": {"items": [{
                "id": "abc123",
                "fields": {
                    "schemeName": "Pradhan Mantri Kisan Samman Nidhi",
                    "briefDescription": "Income support for farmers",
                    "nodalMinistryName": "Ministry of Agriculture",
                    "schemeCategory": ["Agriculture", "Rural"],
                    "beneficiaryState": ["All"],
                    "level": "Central",
                    "slug": "pm-kisan",
                },
            }]},
            "summary": {"total": 4321},
        }
    })

    [candidate] = extract(payload, MYSCHEME)

    assert candidate.name == "Pradhan Mantri Kisan Samman Nidhi"
    assert candidate.description == "Income support for farmers"
    assert candidate.ministry == "Ministry of Agriculture"
    assert candidate.sector == ["Agriculture", "Rural"]
    assert candidate.scheme_id == "abc123"
    assert candidate.source_url == "https://www.myscheme.gov.in/schemes/pm-kisan"
    assert extract_total(payload) == 4321


def test_alternate_field_names_in_priority_order():
    payload = json_payload({"results": [
        {"_id": "x1", "schemeShortTitle": "Short Title Scheme", "title": "Ignored Title", "summary": "s"},
        {"name": "", "title": "Fallback Title Scheme"},
    ]})

    first, second = extract(payload, MYSCHEME)

    assert first.name == "Short Title Scheme"
    assert first.scheme_id == "x1"
    assert first.description == "s"
    assert second.name == "Fallback Title Scheme"
    assert second.scheme_id == ""
    assert second.ministry == ""


def test_top_level_list_and_source_wrapper():
    payload = json_payload([{"_source": {"scheme_name": "Wrapped Source Scheme"}}])

    [candidate] = extract(payload, MYSCHEME)

    assert candidate.name == "Wrapped Source Scheme"


def test_unrecognised_json_yields_nothing():
    assert extract(json_payload({"message": "maintenance"}), MYSCHEME) == []
    assert extract_total(json_payload({"message": "maintenance"})) is None


def test_html_container_selectors():
    html = """
    <table><tbody>
      <tr><td><a href="/scheme/1">Pradhan Mantri Awas Yojana</a></td><td>Ministry: Housing and Urban Affairs</td></tr>
      <tr><td><a href="/scheme/2">National Social Assistance Programme</a></td><td>Ministry: Rural Development</td></tr>
    </tbody></table>
    """

    candidates = extract(html_payload(html), DBT)

    assert [c.name for c in candidates] == ["Pradhan Mantri Awas Yojana", "National Social Assistance Programme"]
    assert candidates[0].source_url == "https://dbt.example/scheme/1"
    assert candidates[0].ministry == "Housing and Urban Affairs"
    assert candidates[0].level == "Central"


def test_html_falls_back_to_keyword_lines():
    html = """
    <html><body>
      <section>
        <span>Welcome to the portal</span>
        <span>Stand-Up India Scheme</span>
        <span>Visit www.scheme.gov.in for the Yojana list</span>
        <span>Write to scheme-help@gov.in</span>
        <span>Yojana</span>
      </section>
    </body></html>
    """

    candidates = extract(html_payload(html), DBT)

    assert [c.name for c in candidates] == ["Stand-Up India Scheme"]
    assert candidates[0].source_url == "https://dbt.example/list"


def test_keyword_line_length_bounds():
    long_line = "Scheme " + "x" * 200
    lines = scan_keyword_lines(f"Short yojana\n{long_line}\nA ten char\n", DBT)

    assert lines == ["Short yojana"]


def test_html_without_matches_yields_nothing():
    assert extract(html_payload("<html><body><p>Nothing here</p></body></html>"), DBT) == []


def test_detail_page_attributes():
    html = """
    <html><head><script>var eligibility = "ignored";</script></head><body>
      <section id="details">Income support for landholding farmer families.</section>
      <section class="eligibility-criteria">All landholding farmer families</section>
      <section id="benefits">Rs 6000 per year</section>
      <div class="how-to-apply">Register on the PM-KISAN portal</div>
      <ul class="document-list"><li>Aadhaar card</li><li></li><li>Bank passbook</li></ul>
    </body></html>
    """

    details = extract_details(html_payload(html, url="https://www.myscheme.gov.in/schemes/pm-kisan"), MYSCHEME)

    assert details == {
        "description": "Income support for landholding farmer families.",
        "eligibility": "All landholding farmer families",
        "benefits": "Rs 6000 per year",
        "application_process": "Register on the PM-KISAN portal",
        "documents_required": "Aadhaar card, Bank passbook",
    }


def test_detail_extraction_ignores_json_payloads():
    assert extract_details(json_payload({"data": {}}), MYSCHEME) == {}
