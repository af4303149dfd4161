import time

import pytest

from mailinline.inline import apply_edits, inline_css, set_style_attribute


@pytest.mark.parametrize("css", ["", "   ", "\n\t", None])
def test_empty_css_returns_html_unchanged(css):
    html = '<div class="app">Hello</div>'
    assert inline_css(html, css) == html


def test_css_without_rules_returns_html_unchanged():
    html = "<p>Hello</p>"
    assert inline_css(html, "/* nothing */ @media print { p { color: red } }") == html


def test_type_selector():
    assert inline_css("<p>Hello</p>", "p { color: red; }") == '<p style="color: red">Hello</p>'


def test_class_selector():
    html = '<div class="app">Hello</div>'
    assert inline_css(html, ".app { font-size: 14px; }") == '<div class="app" style="font-size: 14px">Hello</div>'


def test_id_selector():
    html = '<div id="main">Hello</div>'
    assert inline_css(html, "#main { margin: 0; }") == '<div id="main" style="margin: 0">Hello</div>'


def test_attribute_selector():
    html = '<div data-u-abc="">Hello</div>'
    assert inline_css(html, "[data-u-abc] { color: blue; }") == '<div data-u-abc="" style="color: blue">Hello</div>'


def test_multiple_rules_on_one_element():
    result = inline_css('<p class="text">Hello</p>', "p { color: red; } .text { font-size: 16px; }")

    assert result == '<p class="text" style="color: red; font-size: 16px">Hello</p>'


def test_class_overrides_type():
    result = inline_css('<p class="text">Hello</p>', ".text { color: blue; } p { color: red; }")

    assert "color: blue" in result
    assert "color: red" not in result


def test_id_overrides_class():
    result = inline_css('<p class="text" id="main">Hello</p>', "#main { color: green; } .text { color: red; }")

    assert "color: green" in result
    assert "color: red" not in result


def test_existing_inline_style_wins_only_on_contested_property():
    result = inline_css('<p style="font-weight: bold">Hello</p>', "p { color: red; font-weight: normal; }")

    assert "color: red" in result
    assert "font-weight: bold" in result
    assert "normal" not in result
    assert result.count("style=") == 1


def test_existing_style_beats_id_selector():
    result = inline_css('<p id="x" style="color: black">Hi</p>', "#x { color: red; }")

    assert result == '<p id="x" style="color: black">Hi</p>'


def test_source_order_breaks_ties():
    result = inline_css('<p class="a b">Hello</p>', ".a { color: red; } .b { color: blue; }")

    assert "color: blue" in result
    assert "color: red" not in result


def test_descendant_selector():
    html = '<div class="wrapper"><table><tr><td><p>Hello</p></td></tr></table></div><p>Out</p>'
    result = inline_css(html, ".wrapper p { color: red; }")

    assert '<td><p style="color: red">Hello</p>' in result
    assert result.endswith("<p>Out</p>")


def test_child_selector():
    html = '<div class="a"><p>Direct</p><div><p>Nested</p></div></div>'
    result = inline_css(html, ".a > p { color: blue; }")

    assert '<p style="color: blue">Direct</p>' in result
    assert "<p>Nested</p>" in result


def test_grouped_selectors():
    result = inline_css("<h1>Title</h1><p>Text</p>", "h1, p { margin: 0; }")

    assert result == '<h1 style="margin: 0">Title</h1><p style="margin: 0">Text</p>'


def test_media_rules_are_not_inlined():
    css = ".text { color: red; } @media (max-width: 600px) { .text { color: blue; } }"
    result = inline_css('<p class="text">Hello</p>', css)

    assert "color: red" in result
    assert "color: blue" not in result


def test_multiple_elements():
    result = inline_css('<div><p class="a">One</p><p class="b">Two</p></div>', ".a { color: red; } .b { color: blue; }")

    assert result == '<div><p class="a" style="color: red">One</p><p class="b" style="color: blue">Two</p></div>'


def test_void_elements():
    html = '<div><img src="test.png"><br/><img src="x.png" /><span>after</span></div>'
    css = "img { border: 0; } br { clear: both; } div > span { color: red; }"
    result = inline_css(html, css)

    assert result == (
        '<div><img src="test.png" style="border: 0"><br style="clear: both"/>'
        '<img src="x.png" style="border: 0"/><span style="color: red">after</span></div>'
    )


def test_comments_are_stripped():
    assert inline_css("<p>Hello</p>", "/* comment */ p { color: red; }") == '<p style="color: red">Hello</p>'


def test_untouched_elements_stay_byte_identical():
    html = "<div  data-x='1'>\n  <!-- <p> -->\n  <P  CLASS=\"hit\">a</P>\n  <span style=\"x:y\">b</span>\n</div>"
    result = inline_css(html, ".hit { color: red; }")

    assert result == html.replace('CLASS="hit">', 'CLASS="hit" style="color: red">')


def test_existing_style_without_matches_is_left_alone():
    html = '<p style="font-weight:bold;">Hello</p>'
    assert inline_css(html, "span { color: red; }") == html


def test_single_quoted_existing_style_is_replaced():
    result = inline_css("<p style='color: black'>Hi</p>", "p { margin: 0; }")

    assert result == '<p style="margin: 0; color: black">Hi</p>'


def test_quotes_in_values_keep_the_attribute_well_formed():
    result = inline_css("<p>Hi</p>", 'p { font-family: "Helvetica Neue", Arial; }')

    assert result == '<p style="font-family: &quot;Helvetica Neue&quot;, Arial">Hi</p>'


def test_escaped_existing_style_round_trips():
    html = '<p style="font-family: &quot;A&quot;">Hi</p>'
    result = inline_css(html, "p { color: red; }")

    assert result == '<p style="color: red; font-family: &quot;A&quot;">Hi</p>'


def test_pseudo_classes_match_unconditionally():
    result = inline_css('<a href="#">x</a>', "a:hover { color: red; } a { color: blue; }")

    assert "color: red" in result


def test_unsupported_selectors_only_skip_their_own_rule():
    css = "p::before { content: 'x'; } h1 + p { color: red; } p!bad { x: y; } > p { a: b; } p { margin: 0; }"

    assert inline_css("<h1>T</h1><p>x</p>", css) == '<h1>T</h1><p style="margin: 0">x</p>'


def test_malformed_css_keeps_extracted_rules():
    assert inline_css("<p>x</p>", "p { color: red; } .a { color: blue") == '<p style="color: red">x</p>'


def test_all_malformed_declarations_add_no_style():
    html = "<p>x</p>"
    assert inline_css(html, "p { nonsense }") == html


def test_apply_edits_uses_original_offsets():
    source = "<a><b><c>"
    edits = [(0, 3, "<A1>"), (6, 9, "<C1>"), (3, 6, "<B1>")]

    assert apply_edits(source, edits) == "<A1><B1><C1>"
    assert apply_edits(source, []) == source


def test_set_style_attribute():
    assert set_style_attribute("<p>", "color: red") == '<p style="color: red">'
    assert set_style_attribute("<br/>", "a: b") == '<br style="a: b"/>'
    assert set_style_attribute('<img src="a" />', "a: b") == '<img src="a" style="a: b"/>'
    assert set_style_attribute('<p title="style" style="x: y">', "a: b") == '<p title="style" style="a: b">'
    assert set_style_attribute("<p STYLE=x:y class=c>", "a: b") == '<p style="a: b" class=c>'


def test_deeply_nested_tables_do_not_stall():
    html = "<div>" * 24 + "<p>x</p>" + "</div>" * 24
    css = ".nope " + "div " * 10 + "p { color: red; } div p { margin: 0; }"

    started = time.monotonic()
    result = inline_css(html, css)

    assert time.monotonic() - started < 2.0
    assert "<p style=\"margin: 0\">x</p>" in result
    assert "color: red" not in result


def test_style_is_inserted_right_before_the_self_closing_slash():
    result = inline_css('<img src="x" /><input type="text"  >', "img, input { border: 0; }")

    assert result == '<img src="x" style="border: 0"/><input type="text"  style="border: 0">'


def test_unparsed_inline_style_text_is_kept():
    result = inline_css('<p style="junk; color: black">Hi</p>', "p { margin: 0; color: red; }")

    assert result == '<p style="margin: 0; color: black; junk">Hi</p>'
