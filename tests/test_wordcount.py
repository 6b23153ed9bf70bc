from groupbot import wordcount


def test_load_stopwords_sorts_and_strips_carriage_returns():
    assert wordcount.load_stopwords("b\r\na\nc") == ["a", "b", "c"]


def test_is_chinese_word():
    assert wordcount.is_chinese_word("你好") is True
    assert wordcount.is_chinese_word("hello") is False
    assert wordcount.is_chinese_word("你好a") is False
    assert wordcount.is_chinese_word("你好\n") is False
    assert wordcount.is_chinese_word("") is False


def test_count_words_filters_stopwords_and_non_chinese():
    messages = ["你好 世界 的", "你好 abc", "世界 你好"]
    counts = wordcount.count_words(messages, lambda t: t.split(" "), ["的"])
    assert dict(counts) == {"你好": 3, "世界": 2}


def test_count_words_skips_blank_messages():
    seen = []

    def segment(text):
        seen.append(text)
        return text.split()

    counts = wordcount.count_words(["   ", "  你好  "], segment, [])
    assert seen == ["你好"]
    assert counts["你好"] == 1


def test_rank_by_word_count_orders_descending():
    ranked = wordcount.rank_by_word_count({"a": 1, "b": 3, "c": 2})
    assert ranked == [("b", 3), ("c", 2), ("a", 1)]


def test_rank_preserves_all_entries():
    freq = {"甲": 4, "乙": 4, "丙": 1}
    ranked = wordcount.rank_by_word_count(freq)
    assert dict(ranked) == freq
    values = [v for _, v in ranked]
    assert values == sorted(values, reverse=True)