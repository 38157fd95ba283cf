"""Reconciliation engine.

Matches normalized feed candidates against the local cache and the remote
directory, and emits the minimal set of remote mutations.
"""

from busfeed.reconcile.directory import DirectoryResolver, RemoteDirectory
from busfeed.reconcile.reconciler import Reconciler, next_midnight
from busfeed.reconcile.result import Mutation, MutationKind, PassResult
from busfeed.reconcile.sweeper import AbsenceSweeper

__all__ = [
    "AbsenceSweeper",
    "DirectoryResolver",
    "Mutation",
    "MutationKind",
    "PassResult",
    "Reconciler",
    "RemoteDirectory",
    "next_midnight",
]
