# apps/board/positions.py

"""
Position Engine - ordenação contígua de listas e cards

Funções puras sobre sequências de pares (id, posição). Nada aqui toca o
banco: o coordinator carrega a sequência, chama estas funções e grava
apenas as linhas cuja posição mudou (ver `changed_positions`).

Toda função devolve uma sequência nova, ordenada e numerada 0..n-1.
A entrada é normalizada antes (ordem por posição e depois por id), então
buracos ou posições duplicadas gravados no passado são corrigidos na
primeira escrita seguinte.
"""

from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

Pair = Tuple[Hashable, int]


def clamp(index: int, lower: int, upper: int) -> int:
    return max(lower, min(index, upper))


def normalize(sequence: Iterable[Pair]) -> List[Pair]:
    """Ordena por (posição, id) e renumera a partir de zero"""
    ordered = sorted(sequence, key=lambda pair: (pair[1], pair[0]))
    return [(item_id, index) for index, (item_id, _) in enumerate(ordered)]


def ids_in_order(sequence: Iterable[Pair]) -> List[Hashable]:
    return [item_id for item_id, _ in normalize(sequence)]


def _renumber(ids: Sequence[Hashable]) -> List[Pair]:
    return [(item_id, index) for index, item_id in enumerate(ids)]


def is_contiguous(sequence: Iterable[Pair]) -> bool:
    """Posições formam exatamente [0, n-1] sem repetição"""
    positions = sorted(position for _, position in sequence)
    return positions == list(range(len(positions)))


def insert_at(sequence: Iterable[Pair], new_id, desired_index: Optional[int] = None) -> List[Pair]:
    """
    Insere `new_id` em `desired_index`

    O índice é limitado a [0, len]; quem estava em índice >= desired_index
    desce uma posição. Sem índice, o item vai para o fim.
    """
    ids = ids_in_order(sequence)
    if new_id in ids:
        raise ValueError(f"{new_id!r} already in sequence")

    if desired_index is None:
        desired_index = len(ids)
    index = clamp(desired_index, 0, len(ids))

    ids.insert(index, new_id)
    return _renumber(ids)


def remove_id(sequence: Iterable[Pair], item_id) -> List[Pair]:
    """Remove `item_id`; quem estava depois sobe uma posição"""
    ids = ids_in_order(sequence)
    try:
        ids.remove(item_id)
    except ValueError:
        raise KeyError(item_id)
    return _renumber(ids)


def move_within_sequence(sequence: Iterable[Pair], item_id, new_index: Optional[int]) -> List[Pair]:
    """
    Move `item_id` para `new_index` dentro da mesma sequência

    - new_index > antigo: quem está em (antigo, new_index] sobe uma posição
    - new_index < antigo: quem está em [new_index, antigo) desce uma posição
    - iguais: nada muda

    O índice é limitado a [0, len-1] (o próprio item conta no tamanho);
    sem índice, o item vai para o fim.
    """
    ids = ids_in_order(sequence)
    try:
        old_index = ids.index(item_id)
    except ValueError:
        raise KeyError(item_id)

    if new_index is None:
        new_index = len(ids) - 1
    index = clamp(new_index, 0, len(ids) - 1)
    if index != old_index:
        ids.pop(old_index)
        ids.insert(index, item_id)
    return _renumber(ids)


def move_across_sequences(source: Iterable[Pair], target: Iterable[Pair],
                          item_id, new_index: Optional[int]) -> Tuple[List[Pair], List[Pair]]:
    """
    Move `item_id` de `source` para `target` em um único passo

    Equivale a remove_id(source) seguido de insert_at(target); as duas
    sequências novas saem juntas, então o id nunca aparece em ambas nem
    some das duas.
    """
    target = list(target)
    if any(current_id == item_id for current_id, _ in target):
        raise ValueError(f"{item_id!r} already in target sequence")

    new_source = remove_id(source, item_id)
    new_target = insert_at(target, item_id, new_index)
    return new_source, new_target


def changed_positions(before: Iterable[Pair], after: Iterable[Pair]) -> Dict[Hashable, int]:
    """
    Ids cujo valor gravado difere da nova posição

    `before` deve ser a sequência com as posições realmente gravadas
    (não normalizada); ids novos em `after` sempre aparecem no resultado.
    """
    stored = dict(before)
    return {
        item_id: position
        for item_id, position in after
        if stored.get(item_id) != position
    }
