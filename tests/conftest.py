import os

import polars as pl
import pytest

from ud_corpus import load_ud_nlp
from ud_corpus.analysis.tokens import TaggedToken

NEWS_TEXTS = [
    "今天天气很好。",
    "市政府发布了新的交通政策。",
    "股市今天上涨了。",
    "新的学校明年开学。",
    "警方正在调查这起事故。",
    "天气预报说明天下雨。",
    "公司发布了年度报告。",
    "运动员打破了世界纪录。",
    "新的地铁线路已经开通。",
    "专家讨论了经济形势。",
]

WEIBO_TEXTS = [
    "祝你一天过得愉快.",
    "今天好开心啊！",
    "我爱吃火锅。",
    "周末去看电影吧。",
    "这家店的咖啡真好喝。",
    "好累啊，想睡觉。",
    "你今天过得怎么样？",
    "我们一起去旅行吧！",
    "这首歌太好听了。",
    "明天见，晚安。",
]


@pytest.fixture(scope="session")
def model():
    return os.environ.get("SPACY_MODEL", "blank:zh")


@pytest.fixture(scope="session")
def nlp(model):
    return load_ud_nlp(model)


@pytest.fixture
def corpus_csv(tmp_path):
    """Two document types with ten documents each."""
    path = tmp_path / "corpus.csv"
    pl.DataFrame(
        {
            "type": ["news"] * len(NEWS_TEXTS) + ["weibo"] * len(WEIBO_TEXTS),
            "text": NEWS_TEXTS + WEIBO_TEXTS,
        }
    ).write_csv(path)
    return path


@pytest.fixture
def tagged_tokens():
    """Hand-tagged token sequences for two groups."""

    def seq(*pairs):
        return [TaggedToken(token, tag) for token, tag in pairs]

    return {
        "news1": seq(("政府", "NOUN"), ("发布", "VERB"), ("政策", "NOUN"), ("。", "PUNCT")),
        "news2": seq(("政府", "NOUN"), ("调查", "VERB"), ("事故", "NOUN"), ("。", "PUNCT")),
        "news3": seq(("经济", "NOUN"), ("政策", "NOUN"), ("。", "PUNCT")),
        "weibo4": seq(("我", "PRON"), ("爱", "VERB"), ("火锅", "NOUN"), ("！", "PUNCT")),
        "weibo5": seq(("我", "PRON"), ("好", "ADV"), ("开心", "ADJ"), ("！", "PUNCT")),
        "weibo6": seq(("我", "PRON"), ("爱", "VERB"), ("电影", "NOUN"), ("。", "PUNCT")),
    }
