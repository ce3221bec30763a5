from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterator, List, Optional

from tabulate import tabulate

from . import __version__
from .check import LemmatizerEvaluator, TaggerEvaluator
from .config import AnnotatorConfig, resolve_model_path
from .data_loading import CORPUS_FORMATS, FORMAT_TSV, load_samples
from .errors import FlexilemmaError
from .lemmatizer import LemmatizerME, StatisticalLemmatizer
from .model_cache import normalize_language
from .models import load_model, save_model
from .tagger import POSTaggerME, StatisticalTagger
from .task_registry import TASK_COMPONENTS, TASK_TAG
from .train import TrainingParameters, train_model

COMPONENT_CHOICES = sorted(TASK_COMPONENTS.values())
TASK_CHOICES = ("train", "eval", "tag")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flexilemma",
        description="Statistical POS tagging and lemmatization with edit-script lemma classes",
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="task", required=False)

    # Common arguments inherited by every subcommand
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging")
    parent_parser.add_argument("--verbose", action="store_true", help="Print high-level progress messages")

    # train -------------------------------------------------------------------
    train_parser = subparsers.add_parser("train", help="Train a tagger or lemmatizer model", parents=[parent_parser])
    train_parser.add_argument("--component", choices=COMPONENT_CHOICES, required=True)
    train_parser.add_argument("--language", required=True, help="Language code stored in the model")
    train_parser.add_argument("--input", required=True, help="Training corpus")
    train_parser.add_argument("--output", required=True, help="Model archive to write")
    train_parser.add_argument("--params", default=None, help="JSON file with training parameters")
    train_parser.add_argument("--format", choices=CORPUS_FORMATS, default=FORMAT_TSV, help="Corpus format")

    # eval --------------------------------------------------------------------
    eval_parser = subparsers.add_parser("eval", help="Evaluate a model on a gold corpus", parents=[parent_parser])
    eval_parser.add_argument("--component", choices=COMPONENT_CHOICES, required=True)
    eval_parser.add_argument("--language", required=True)
    eval_parser.add_argument("--model", required=True, help="Model archive (path or name in the models directory)")
    eval_parser.add_argument("--input", required=True, help="Gold corpus")
    eval_parser.add_argument("--format", choices=CORPUS_FORMATS, default=FORMAT_TSV, help="Corpus format")
    eval_parser.add_argument("--beam-size", type=int, default=None, help="Override the beam size stored in the model")

    # tag ---------------------------------------------------------------------
    tag_parser = subparsers.add_parser(
        "tag",
        help="Tag (and optionally lemmatize) one-token-per-line input",
        parents=[parent_parser],
    )
    tag_parser.add_argument("--language", required=True)
    tag_parser.add_argument("--tagger-model", required=True)
    tag_parser.add_argument("--lemmatizer-model", default=None)
    tag_parser.add_argument("--input", default="-", help="Input file, one token per line ('-' for STDIN)")
    tag_parser.add_argument("--output", default="-", help="Output file ('-' for STDOUT)")
    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    if getattr(args, "debug", False):
        level = logging.DEBUG
    elif getattr(args, "verbose", False):
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _read_sentences(lines) -> Iterator[List[str]]:
    sentence: List[str] = []
    for line in lines:
        token = line.strip()
        if not token:
            if sentence:
                yield sentence
                sentence = []
            continue
        sentence.append(token)
    if sentence:
        yield sentence


def run_train(args: argparse.Namespace) -> int:
    params = TrainingParameters.from_file(args.params) if args.params else TrainingParameters()
    samples = load_samples(args.input, args.format)
    if args.verbose:
        print(f"[flexilemma] Loaded {len(samples):,} sentences from {args.input}", file=sys.stderr)
    artifact = train_model(args.language, samples, params, component=args.component, verbose=args.verbose)
    save_model(artifact, args.output)
    print(f"[flexilemma] Model saved to {args.output}", file=sys.stderr)
    return 0


def run_eval(args: argparse.Namespace) -> int:
    model = load_model(resolve_model_path(args.model), language=normalize_language(args.language))
    samples = load_samples(args.input, args.format)
    if args.component == TASK_COMPONENTS[TASK_TAG]:
        evaluator = TaggerEvaluator(POSTaggerME(model, beam_size=args.beam_size))
    else:
        evaluator = LemmatizerEvaluator(LemmatizerME(model, beam_size=args.beam_size))
    accuracy = evaluator.evaluate(samples)
    rows = [[args.component, args.language, f"{accuracy.mean:.4f}", accuracy.count]]
    print(tabulate(rows, headers=["Component", "Language", "Accuracy", "Tokens"]))
    return 0


def run_tag(args: argparse.Namespace) -> int:
    tagger = StatisticalTagger(AnnotatorConfig(language=args.language, model=resolve_model_path(args.tagger_model)))
    lemmatizer: Optional[StatisticalLemmatizer] = None
    if args.lemmatizer_model:
        lemmatizer = StatisticalLemmatizer(
            AnnotatorConfig(language=args.language, model=resolve_model_path(args.lemmatizer_model))
        )

    source = sys.stdin if args.input == "-" else open(args.input, "r", encoding="utf-8")
    target = sys.stdout if args.output == "-" else open(args.output, "w", encoding="utf-8")
    try:
        for tokens in _read_sentences(source):
            if lemmatizer is not None:
                tags = tagger.pos_annotate(tokens)
                morphemes = lemmatizer.get_morphemes(tokens, tags)
            else:
                morphemes = tagger.get_morphemes(tokens)
            for morpheme in morphemes:
                target.write(f"{morpheme}\n")
            target.write("\n")
    finally:
        if source is not sys.stdin:
            source.close()
        if target is not sys.stdout:
            target.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.task:
        parser.error("No task specified. Use one of: " + ", ".join(TASK_CHOICES))
    _configure_logging(args)

    try:
        if args.task == "train":
            return run_train(args)
        if args.task == "eval":
            return run_eval(args)
        if args.task == "tag":
            return run_tag(args)
    except FlexilemmaError as exc:
        print(f"[flexilemma] Error: {exc}", file=sys.stderr)
        return 1
    except FileNotFoundError as exc:
        print(f"[flexilemma] Error: {exc}", file=sys.stderr)
        return 1

    parser.error(f"Unknown task '{args.task}'. Supported tasks: {', '.join(TASK_CHOICES)}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
