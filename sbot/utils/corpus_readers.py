"""
Readers that turn local files into corpus units for offline training.

Each returned string is one corpus unit, i.e. one ``Chain.build`` call.
"""

import pandas as pd


def read_csv_corpus(csv_file_path, header=None):
    """
    Read the first column of a CSV file as corpus units.

    Args:
        csv_file_path (str): The path to the CSV file.
        header (int or None): Row number to use as the column names, or None
            if the CSV file has no header.

    Returns:
        list: One string per non-empty row of the first column.

    Example:
        >>> read_csv_corpus("comments.csv")
        ['Hello world', 'This is a test']
    """
    df = pd.read_csv(csv_file_path, encoding="UTF-8", header=header)
    if df.empty:
        return []

    column = df.iloc[:, 0].dropna().astype(str)
    return [text for text in column if text.strip()]


def read_text_corpus(text_file_path):
    """Read a text file as corpus units, one per non-blank line."""
    with open(text_file_path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def read_corpus(path, csv_header=None):
    """Read ``path`` with the CSV reader for ``.csv`` files, as text otherwise."""
    if path.lower().endswith(".csv"):
        return read_csv_corpus(path, header=csv_header)
    return read_text_corpus(path)
