"""C source templates for the generated XDP program.

Base templates hold the block slots filled by ``hpx.engine.composer``. The
nested fragments share one contract: the key-extraction fragment declares
``<list>_key`` (0 when the packet is not subject to the list) and the action
fragments consume it, so any action composes with either extractor.

``struct Data`` must stay in sync with ``hpx.maps.codec.RECORD``.
"""

_PREAMBLE = """\
// clang-format off
#include "vmlinux.h"
#include <bpf/bpf_helpers.h>
#include <bpf/bpf_endian.h>
// clang-format on

#define ETH_P_IP 0x0800

struct Data {
	__u32 ip;
	__u64 rx_packets;
	__u64 fast_packets;
	__u64 last_access_ns;
};

static const __u64 NS_IN_MS = {{ns_in_ms}};
static const __u64 DECAY_FACTOR = {{decay_factor}};
"""

_MAPS = """
{{whitelist_map}}

{{blacklist_map}}

{{graylist_map}}
"""

_PROGRAM = """
SEC("xdp")
int {{name}}(struct xdp_md *ctx) {
	void *data = (void *)(long)ctx->data;
	void *data_end = (void *)(long)ctx->data_end;

	struct ethhdr *eth = data;
	if ((void *)(eth + 1) > data_end)
		return {{default_action}};

	if (eth->h_proto != bpf_htons(ETH_P_IP))
		return {{default_action}};

	struct iphdr *ip = (void *)(eth + 1);
	if ((void *)(ip + 1) > data_end)
		return {{default_action}};

	{{whitelist_action}}

	{{blacklist_action}}

	{{graylist_action}}

	return {{default_action}};
}

char __license[] SEC("license") = "GPL";
"""

BASE_IP = _PREAMBLE + _MAPS + _PROGRAM

BASE_DNS = (
    _PREAMBLE
    + """
#define DNS_PORT 53
"""
    + _MAPS
    + _PROGRAM
)

MAP = """\
struct {
	__uint(type, BPF_MAP_TYPE_LRU_HASH);
	__type(key, __u32);
	__type(value, struct Data);
	__uint(max_entries, {{max}});
} {{list}} SEC(".maps");"""

GET_DATA_IP = """\
__u32 {{list}}_key = ip->saddr;
"""

GET_DATA_DNS = """\
__u32 {{list}}_key = 0;
if (ip->protocol == IPPROTO_UDP) {
	struct udphdr *{{list}}_udp = (void *)(ip + 1);
	if ((void *)({{list}}_udp + 1) <= data_end && {{list}}_udp->dest == bpf_htons(DNS_PORT))
		{{list}}_key = ip->daddr;
}
"""

ACTION = """\
struct Data *{{list}}_data = bpf_map_lookup_elem(&{{list}}, &{{list}}_key);
if ({{list}}_data) {
	return {{action}};
}"""

GRAYLIST = """\
if ({{list}}_key) {
	__u64 {{list}}_now = bpf_ktime_get_ns();
	__u64 {{list}}_window = (__u64){{frequency}} * NS_IN_MS;
	struct Data *{{list}}_data = bpf_map_lookup_elem(&{{list}}, &{{list}}_key);
	if ({{list}}_data) {
		__u64 {{list}}_elapsed = {{list}}_now - {{list}}_data->last_access_ns;
		if ({{list}}_elapsed < {{list}}_window) {
			__u64 {{list}}_fast = __sync_add_and_fetch(&{{list}}_data->fast_packets, 1);
			{{promote}}
		} else if ({{list}}_elapsed > DECAY_FACTOR * {{list}}_window) {
			{{list}}_data->fast_packets = 0;
		}
		__sync_fetch_and_add(&{{list}}_data->rx_packets, 1);
		{{list}}_data->last_access_ns = {{list}}_now;
	} else {
		struct Data {{list}}_new = {0};
		{{list}}_new.ip = {{list}}_key;
		{{list}}_new.rx_packets = 1;
		{{list}}_new.last_access_ns = {{list}}_now;
		bpf_map_update_elem(&{{list}}, &{{list}}_key, &{{list}}_new, BPF_NOEXIST);
	}
}"""

PROMOTE = """\
if ({{list}}_fast >= {{fast_packet_threshold}}) {
	struct Data {{list}}_promoted = *{{list}}_data;
	bpf_map_update_elem(&{{promote_into}}, &{{list}}_key, &{{list}}_promoted, BPF_ANY);
	return XDP_DROP;
}"""
