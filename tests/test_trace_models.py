import threading
import unittest

from tontrace.core.dto import AccountID, Bits256, Message, Transaction
from tontrace.core.enums import ContractInterface, has_interface
from tontrace.core.models import Trace, TraceAdditionalInfo, TraceID, calculate_progress, visit


def _acct(n: int) -> AccountID:
    return AccountID(workchain=0, address=n.to_bytes(32, "big"))


def _node(n: int, children=None, emulated=False, pending=0, account=None) -> Trace:
    tx = Transaction(
        hash=Bits256(n.to_bytes(32, "big")),
        lt=n,
        utime=1700000000 + n,
        account=account or _acct(n),
        emulated=emulated,
        out_msgs=[Message(destination=_acct(1000 + i)) for i in range(pending)],
    )
    return Trace(transaction=tx, children=children)


class AdditionalInfoSlotTests(unittest.TestCase):
    def test_unset_slot_is_none(self) -> None:
        self.assertIsNone(_node(1).additional_info())

    def test_set_replaces_value(self) -> None:
        t = _node(1)
        first = TraceAdditionalInfo()
        second = TraceAdditionalInfo(jetton_masters={_acct(2): _acct(3)})
        t.set_additional_info(first)
        self.assertIs(t.additional_info(), first)
        t.set_additional_info(second)
        self.assertIs(t.additional_info(), second)

    def test_concurrent_readers_and_writers(self) -> None:
        t = _node(1)
        values = [TraceAdditionalInfo(jetton_masters={_acct(i): _acct(i + 1)}) for i in range(8)]
        errors = []

        def writer(info: TraceAdditionalInfo) -> None:
            for _ in range(200):
                t.set_additional_info(info)

        def reader() -> None:
            for _ in range(200):
                got = t.additional_info()
                if got is not None and not any(got is v for v in values):
                    errors.append(got)

        threads = [threading.Thread(target=writer, args=(v,)) for v in values]
        threads += [threading.Thread(target=reader) for _ in range(8)]
        for th in threads:
            th.start()
        for th in threads:
            th.join(timeout=10)

        self.assertEqual(errors, [])
        self.assertTrue(any(t.additional_info() is v for v in values))

    def test_jetton_master_accessors(self) -> None:
        info = TraceAdditionalInfo()
        self.assertIsNone(info.jetton_master(_acct(1)))
        info.set_jetton_master(_acct(1), _acct(2))
        info.set_jetton_master(_acct(3), _acct(4))
        self.assertEqual(info.jetton_master(_acct(1)), _acct(2))
        self.assertEqual(len(info.jetton_masters), 2)


class VisitTests(unittest.TestCase):
    def test_pre_order_in_child_order(self) -> None:
        root = _node(1, children=[_node(2, children=[_node(4)]), _node(3)])
        seen = []
        visit(root, lambda t: seen.append(t.transaction.lt))
        self.assertEqual(seen, [1, 2, 4, 3])

    def test_trace_id_from_trace(self) -> None:
        shared = _acct(99)
        root = _node(1, children=[_node(2, account=shared), _node(3, account=shared)])
        tid = TraceID.from_trace(root)
        self.assertEqual(tid.hash, root.hash)
        self.assertEqual(tid.lt, 1)
        self.assertEqual(tid.length, 3)
        self.assertEqual(tid.unique_accounts_count, 2)


class CompletionTests(unittest.TestCase):
    def test_in_progress_with_unexpanded_message(self) -> None:
        root = _node(1, pending=1)
        self.assertEqual(root.count_uncompleted(), 1)
        self.assertTrue(root.in_progress())

    def test_complete_trace_is_not_in_progress(self) -> None:
        root = _node(1, children=[_node(2), _node(3)])
        self.assertEqual(root.count_uncompleted(), 0)
        self.assertFalse(root.in_progress())

    def test_uncompleted_counts_whole_tree(self) -> None:
        root = _node(1, pending=1, children=[_node(2, pending=2), _node(3)])
        self.assertEqual(root.count_uncompleted(), 3)

    def test_progress_of_empty_tree(self) -> None:
        self.assertEqual(calculate_progress(None), 0.0)

    def test_progress_of_confirmed_leaf(self) -> None:
        self.assertEqual(_node(1).calculate_progress(), 1.0)

    def test_progress_of_emulated_leaf_with_pending_message(self) -> None:
        self.assertEqual(_node(1, emulated=True, pending=1).calculate_progress(), 0.0)

    def test_pending_messages_only_count_on_leaves(self) -> None:
        # root: 1 finished, its pending message ignored because it has children
        # child: emulated, 2 pending messages -> total 1 + 1 + 2
        root = _node(1, pending=1, children=[_node(2, emulated=True, pending=2)])
        self.assertAlmostEqual(root.calculate_progress(), 1 / 4)

    def test_confirmed_node_counts_as_finished_regardless_of_subtree(self) -> None:
        root = _node(1, children=[_node(2, emulated=True), _node(3, emulated=True)])
        self.assertAlmostEqual(root.calculate_progress(), 1 / 3)


def _chain(length: int, emulated=False, pending_at_tip=0) -> Trace:
    tip = _node(length, emulated=emulated, pending=pending_at_tip)
    for n in range(length - 1, 0, -1):
        tip = _node(n, children=[tip], emulated=emulated)
    return tip


class DeepTraceTests(unittest.TestCase):
    LENGTH = 3000

    def test_visit_long_chain_in_order(self) -> None:
        seen = []
        visit(_chain(self.LENGTH), lambda t: seen.append(t.transaction.lt))
        self.assertEqual(seen, list(range(1, self.LENGTH + 1)))

    def test_completion_of_long_chain(self) -> None:
        root = _chain(self.LENGTH, pending_at_tip=1)
        self.assertTrue(root.in_progress())
        self.assertEqual(root.count_uncompleted(), 1)
        self.assertAlmostEqual(root.calculate_progress(), self.LENGTH / (self.LENGTH + 1))

    def test_trace_id_of_long_chain(self) -> None:
        tid = TraceID.from_trace(_chain(self.LENGTH))
        self.assertEqual(tid.length, self.LENGTH)
        self.assertEqual(tid.unique_accounts_count, self.LENGTH)


class InterfaceTests(unittest.TestCase):
    def test_specialised_interface_implements_general_one(self) -> None:
        ifaces = {ContractInterface.STONFI_POOL_V2_STABLESWAP}
        self.assertTrue(has_interface(ifaces, ContractInterface.STONFI_POOL_V2))
        self.assertFalse(has_interface(ifaces, ContractInterface.STONFI_POOL))

    def test_any_of_names(self) -> None:
        ifaces = [ContractInterface.WALLET, ContractInterface.NFT_AUCTION_V1]
        self.assertTrue(
            has_interface(ifaces, ContractInterface.NFT_SALE_V1, ContractInterface.NFT_AUCTION_V1)
        )
        self.assertFalse(has_interface([], ContractInterface.JETTON_WALLET))


if __name__ == "__main__":
    unittest.main()
