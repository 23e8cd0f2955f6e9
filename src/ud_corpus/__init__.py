import logging

import spacy
from spacy.language import Language

BLANK_PREFIX = "blank:"


def load_ud_nlp(model: str = "zh_core_web_sm", **kwargs) -> Language:
    """
    Load the parsing pipeline (tokenize, tag, parse) by package name or path.

    ``blank:<lang>`` builds an untrained pipeline for ``lang`` with a rule-based
    sentencizer, which only tokenizes and splits sentences.

    >>> nlp = load_ud_nlp("blank:zh")
    >>> "sentencizer" in nlp.pipe_names
    True
    """
    if model.startswith(BLANK_PREFIX):
        nlp = spacy.blank(model[len(BLANK_PREFIX) :])
        nlp.add_pipe("sentencizer")
        return nlp
    nlp = spacy.load(model, **kwargs)
    # Pipelines without parser or senter still need sentence boundaries.
    if not {"parser", "senter", "sentencizer"} & set(nlp.pipe_names):
        nlp.add_pipe("sentencizer", first=True)
    logging.debug(f"Loaded {model} with pipes {nlp.pipe_names}")
    return nlp
