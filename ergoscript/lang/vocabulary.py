"""Static ErgoScript vocabulary shared by hover, completion and type inference.

Everything here is plain data: adding a built-in means adding a row, never a
branch somewhere else.  Catalog entries carry what completion needs (detail,
documentation, insert text) and, for the better documented names, the longer
hover text (signature, description, examples, related names).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class BuiltinKind(str, Enum):
    KEYWORD = "keyword"
    CONSTANT = "constant"
    FUNCTION = "function"
    PROPERTY = "property"
    METHOD = "method"
    TYPE = "type"
    ANNOTATION = "annotation"


@dataclass(frozen=True)
class Builtin:
    name: str
    kind: BuiltinKind
    detail: str
    documentation: str
    insert_text: str
    category: str
    signature: Optional[str] = None
    description: Optional[str] = None
    examples: Tuple[str, ...] = field(default_factory=tuple)
    related: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_snippet(self) -> bool:
        return "${" in self.insert_text

    def hover_signature(self) -> str:
        if self.signature:
            return self.signature
        if self.kind in (BuiltinKind.KEYWORD, BuiltinKind.TYPE):
            return self.name
        return f"{self.name}: {self.detail}"

    def hover_description(self) -> str:
        return self.description or self.documentation


Row = Tuple[str, str, str, str]


def _catalog(kind: BuiltinKind, category: str, rows: Iterable[Row]) -> Tuple[Builtin, ...]:
    items = []
    for name, detail, documentation, insert_text in rows:
        items.append(
            Builtin(
                name=name,
                kind=kind,
                detail=detail,
                documentation=documentation,
                insert_text=insert_text,
                category=category,
            )
        )
    return tuple(items)


# ----------------------------------------------------------------------
# Completion catalogs
# ----------------------------------------------------------------------

KEYWORDS = _catalog(
    BuiltinKind.KEYWORD,
    "Keyword",
    (
        ("val", "keyword", "Declare an immutable value binding", "val ${1:name} = ${2:value}"),
        ("def", "keyword", "Define a function", "def ${1:name}(${2:params}): ${3:ReturnType} = ${4:body}"),
        ("if", "keyword", "Conditional expression", "if (${1:condition}) ${2:trueCase} else ${3:falseCase}"),
        ("true", "Boolean", "Boolean true value", "true"),
        ("false", "Boolean", "Boolean false value", "false"),
    ),
)

GLOBAL_CONSTANTS = _catalog(
    BuiltinKind.CONSTANT,
    "Global Constant",
    (
        ("SELF", "Box", "The current box being spent. Access its value, registers, and other properties.", "SELF"),
        ("HEIGHT", "Int", "Current blockchain height. Used for time-locked contracts.", "HEIGHT"),
        ("OUTPUTS", "Coll[Box]", "Collection of output boxes in the transaction. Access via OUTPUTS(index).", "OUTPUTS(${1:index})"),
        ("INPUTS", "Coll[Box]", "Collection of input boxes in the transaction. Access via INPUTS(index).", "INPUTS(${1:index})"),
        ("CONTEXT", "Context", "Transaction context containing blockchain state and transaction info.", "CONTEXT"),
    ),
)

FUNCTIONS = _catalog(
    BuiltinKind.FUNCTION,
    "Function",
    (
        ("sigmaProp", "Boolean => SigmaProp", "Convert a boolean condition to a Sigma proposition. This is the fundamental building block for ErgoScript contracts.", "sigmaProp(${1:condition})"),
        ("allOf", "Coll[Boolean] => Boolean", "Returns true if all boolean values in the collection are true.", "allOf(${1:conditions})"),
        ("anyOf", "Coll[Boolean] => Boolean", "Returns true if any boolean value in the collection is true.", "anyOf(${1:conditions})"),
        ("xorOf", "Coll[Boolean] => Boolean", "Returns true if an odd number of values in the collection are true (XOR).", "xorOf(${1:conditions})"),
        ("allZK", "Coll[SigmaProp] => SigmaProp", "Sigma conjunction of all propositions in the collection.", "allZK(${1:props})"),
        ("anyZK", "Coll[SigmaProp] => SigmaProp", "Sigma disjunction of all propositions in the collection.", "anyZK(${1:props})"),
        ("proveDlog", "GroupElement => SigmaProp", "Create a Sigma proposition requiring proof of discrete logarithm knowledge.", "proveDlog(${1:groupElement})"),
        ("proveDHTuple", "(GroupElement, GroupElement, GroupElement, GroupElement) => SigmaProp", "Create a Sigma proposition requiring proof of Diffie-Hellman tuple.", "proveDHTuple(${1:g}, ${2:h}, ${3:u}, ${4:v})"),
        ("atLeast", "(Int, Coll[SigmaProp]) => SigmaProp", "Create a threshold Sigma proposition requiring at least k of n signatures.", "atLeast(${1:k}, ${2:props})"),
        ("blake2b256", "Coll[Byte] => Coll[Byte]", "Compute BLAKE2b-256 hash of the input bytes.", "blake2b256(${1:bytes})"),
        ("sha256", "Coll[Byte] => Coll[Byte]", "Compute SHA-256 hash of the input bytes.", "sha256(${1:bytes})"),
        ("byteArrayToBigInt", "Coll[Byte] => BigInt", "Convert a byte array to a big integer.", "byteArrayToBigInt(${1:bytes})"),
        ("byteArrayToLong", "Coll[Byte] => Long", "Convert a byte array to a long value.", "byteArrayToLong(${1:bytes})"),
        ("longToByteArray", "Long => Coll[Byte]", "Convert a long value to a byte array.", "longToByteArray(${1:value})"),
        ("decodePoint", "Coll[Byte] => GroupElement", "Decode bytes to a group element (elliptic curve point).", "decodePoint(${1:bytes})"),
        ("fromBase16", "String => Coll[Byte]", "Decode a Base16 (hexadecimal) string to bytes.", "fromBase16(${1:string})"),
        ("fromBase58", "String => Coll[Byte]", "Decode a Base58 string to bytes.", "fromBase58(${1:string})"),
        ("fromBase64", "String => Coll[Byte]", "Decode a Base64 string to bytes.", "fromBase64(${1:string})"),
        ("PK", "String => SigmaProp", "Create a SigmaProp from a Base58-encoded public key string.", "PK(${1:base58PublicKey})"),
        ("serialize", "T => Coll[Byte]", "Serialize a value to bytes.", "serialize(${1:value})"),
        ("deserializeTo", "Coll[Byte] => T", "Deserialize bytes to a value of the specified type.", "deserializeTo[${1:Type}](${2:bytes})"),
        ("getVar", "Int => Option[T]", "Get a context variable by its tag/index.", "getVar[${1:Type}](${2:tag})"),
        ("xor", "(Coll[Byte], Coll[Byte]) => Coll[Byte]", "Bitwise XOR of two byte collections.", "xor(${1:left}, ${2:right})"),
        ("min", "(T, T) => T", "The smaller of two numeric values.", "min(${1:left}, ${2:right})"),
        ("max", "(T, T) => T", "The larger of two numeric values.", "max(${1:left}, ${2:right})"),
        ("groupGenerator", "GroupElement", "The generator of the cryptographic group.", "groupGenerator"),
        ("bigInt", "String => BigInt", "Create a BigInt from a Base16-encoded string.", "bigInt(${1:base16String})"),
        ("unsignedBigInt", "String => UnsignedBigInt", "Create an UnsignedBigInt from a Base16-encoded string.", "unsignedBigInt(${1:base16String})"),
        ("substConstants", "(Coll[Byte], Coll[Int], Coll[T]) => Coll[Byte]", "Substitute constants in a script bytecode at specified positions.", "substConstants(${1:scriptBytes}, ${2:positions}, ${3:newValues})"),
    ),
)

BOX_MEMBERS = _catalog(
    BuiltinKind.PROPERTY,
    "Property",
    (
        ("value", "Long", "The amount of ERG (in nanoERGs) contained in this box.", "value"),
        ("propositionBytes", "Coll[Byte]", "The serialized guard script (ErgoTree) of this box.", "propositionBytes"),
        ("bytes", "Coll[Byte]", "The serialized representation of the entire box.", "bytes"),
        ("bytesWithoutRef", "Coll[Byte]", "The serialized box without transaction reference.", "bytesWithoutRef"),
        ("id", "Coll[Byte]", "The unique identifier (hash) of this box.", "id"),
        ("creationInfo", "(Int, Coll[Byte])", "Tuple of (height, txId) when this box was created.", "creationInfo"),
        ("tokens", "Coll[(Coll[Byte], Long)]", "Collection of token (tokenId, amount) pairs stored in this box.", "tokens"),
        ("R4", "Option[T]", "Register R4. Access with type parameter, e.g., R4[Int].get", "R4[${1:Type}]"),
        ("R5", "Option[T]", "Register R5. Access with type parameter, e.g., R5[Long].get", "R5[${1:Type}]"),
        ("R6", "Option[T]", "Register R6. Access with type parameter, e.g., R6[Coll[Byte]].get", "R6[${1:Type}]"),
        ("R7", "Option[T]", "Register R7. Access with type parameter.", "R7[${1:Type}]"),
        ("R8", "Option[T]", "Register R8. Access with type parameter.", "R8[${1:Type}]"),
        ("R9", "Option[T]", "Register R9. Access with type parameter.", "R9[${1:Type}]"),
    ),
)

CONTEXT_MEMBERS = _catalog(
    BuiltinKind.PROPERTY,
    "Property",
    (
        ("dataInputs", "Coll[Box]", "Read-only input boxes (data inputs) that can be referenced without being spent.", "dataInputs"),
        ("headers", "Coll[Header]", "Collection of previous block headers.", "headers"),
        ("preHeader", "PreHeader", "Information about the block being mined.", "preHeader"),
        ("minerPubKey", "Coll[Byte]", "Public key of the miner who created the current block.", "minerPubKey"),
        ("LastBlockUtxoRootHash", "AvlTree", "Root hash of the UTXO set from the previous block.", "LastBlockUtxoRootHash"),
    ),
) + _catalog(
    BuiltinKind.METHOD,
    "Method",
    (("getVar", "Byte => Option[T]", "Get a context variable by ID.", "getVar[${1:Type}](${2:id})"),),
)

OPTION_MEMBERS = _catalog(
    BuiltinKind.METHOD,
    "Method",
    (
        ("get", "=> T", "Extract the value from an Option. Throws exception if None.", "get"),
        ("getOrElse", "T => T", "Get the value if present, otherwise return the default value.", "getOrElse(${1:default})"),
        ("isDefined", "=> Boolean", "Returns true if the Option contains a value.", "isDefined"),
        ("isEmpty", "=> Boolean", "Returns true if the Option is None.", "isEmpty"),
        ("map", "(T => R) => Option[R]", "Transform the value inside the Option using the given function.", "map { ${1:x} => ${2:transformation} }"),
        ("filter", "(T => Boolean) => Option[T]", "Return the Option if it satisfies the predicate, otherwise None.", "filter { ${1:x} => ${2:condition} }"),
    ),
)

COLLECTION_MEMBERS = _catalog(
    BuiltinKind.PROPERTY,
    "Property",
    (
        ("size", "Int", "The number of elements in the collection.", "size"),
        ("indices", "Coll[Int]", "A collection of valid indices for this collection (0 until size).", "indices"),
    ),
) + _catalog(
    BuiltinKind.METHOD,
    "Method",
    (
        ("isEmpty", "=> Boolean", "Returns true if the collection is empty.", "isEmpty"),
        ("nonEmpty", "=> Boolean", "Returns true if the collection is not empty.", "nonEmpty"),
        ("startsWith", "Coll[T] => Boolean", "Returns true if this collection starts with the given collection.", "startsWith(${1:prefix})"),
        ("endsWith", "Coll[T] => Boolean", "Returns true if this collection ends with the given collection.", "endsWith(${1:suffix})"),
        ("map", "(T => R) => Coll[R]", "Transform each element using the given function.", "map { ${1:x} => ${2:transformation} }"),
        ("flatMap", "(T => Coll[R]) => Coll[R]", "Map each element to a collection and flatten the results.", "flatMap { ${1:x} => ${2:collectionExpression} }"),
        ("filter", "(T => Boolean) => Coll[T]", "Keep only elements that satisfy the predicate.", "filter { ${1:x} => ${2:condition} }"),
        ("fold", "(R, (R, T) => R) => R", "Fold the collection from left to right with an accumulator.", "fold(${1:initial}) { (${2:acc}, ${3:x}) => ${4:body} }"),
        ("exists", "(T => Boolean) => Boolean", "Returns true if any element satisfies the predicate.", "exists { ${1:x} => ${2:condition} }"),
        ("forall", "(T => Boolean) => Boolean", "Returns true if all elements satisfy the predicate.", "forall { ${1:x} => ${2:condition} }"),
        ("apply", "Int => T", "Get element at index (same as coll(i)).", "apply(${1:index})"),
        ("get", "Int => Option[T]", "Safely get element at index, returning Option.", "get(${1:index})"),
        ("getOrElse", "(Int, T) => T", "Get element at index or return default if out of bounds.", "getOrElse(${1:index}, ${2:default})"),
        ("indexOf", "(T, Int) => Int", "Find the index of first occurrence of element, starting from given index.", "indexOf(${1:elem}, ${2:from})"),
        ("slice", "(Int, Int) => Coll[T]", "Extract a sub-collection from index 'from' to index 'until'.", "slice(${1:from}, ${2:until})"),
        ("append", "Coll[T] => Coll[T]", "Concatenate this collection with another (same as ++).", "append(${1:other})"),
        ("zip", "Coll[B] => Coll[(T, B)]", "Combine two collections into a collection of pairs.", "zip(${1:other})"),
        ("patch", "(Int, Coll[T], Int) => Coll[T]", "Replace 'replaced' elements starting at 'from' with elements from 'patch'.", "patch(${1:from}, ${2:patch}, ${3:replaced})"),
        ("updated", "(Int, T) => Coll[T]", "Create a new collection with element at index replaced.", "updated(${1:index}, ${2:elem})"),
        ("updateMany", "(Coll[Int], Coll[T]) => Coll[T]", "Update multiple elements at specified indices.", "updateMany(${1:indexes}, ${2:values})"),
    ),
)

NUMERIC_MEMBERS = _catalog(
    BuiltinKind.METHOD,
    "Method",
    (
        ("toByte", "=> Byte", "Convert to Byte type.", "toByte"),
        ("toShort", "=> Short", "Convert to Short type.", "toShort"),
        ("toInt", "=> Int", "Convert to Int type.", "toInt"),
        ("toLong", "=> Long", "Convert to Long type.", "toLong"),
        ("toBigInt", "=> BigInt", "Convert to BigInt type.", "toBigInt"),
        ("toBytes", "=> Coll[Byte]", "Convert to byte collection.", "toBytes"),
        ("toBits", "=> Coll[Boolean]", "Convert to bit collection.", "toBits"),
        ("bitwiseInverse", "=> T", "Bitwise NOT operation (~).", "bitwiseInverse"),
        ("bitwiseOr", "T => T", "Bitwise OR operation (|).", "bitwiseOr(${1:other})"),
        ("bitwiseAnd", "T => T", "Bitwise AND operation (&).", "bitwiseAnd(${1:other})"),
        ("bitwiseXor", "T => T", "Bitwise XOR operation (^).", "bitwiseXor(${1:other})"),
        ("shiftLeft", "Int => T", "Shift bits left by specified number of positions (<<).", "shiftLeft(${1:bits})"),
        ("shiftRight", "Int => T", "Shift bits right by specified number of positions (>>).", "shiftRight(${1:bits})"),
    ),
)

AVL_TREE_MEMBERS = _catalog(
    BuiltinKind.PROPERTY,
    "Property",
    (
        ("digest", "Coll[Byte]", "The digest (root hash) of the AvlTree.", "digest"),
        ("enabledOperations", "Byte", "Bit flags indicating which operations are enabled.", "enabledOperations"),
        ("keyLength", "Int", "Length of keys in bytes.", "keyLength"),
        ("valueLengthOpt", "Option[Int]", "Optional fixed length of values in bytes.", "valueLengthOpt"),
        ("isInsertAllowed", "Boolean", "True if insert operations are allowed.", "isInsertAllowed"),
        ("isUpdateAllowed", "Boolean", "True if update operations are allowed.", "isUpdateAllowed"),
        ("isRemoveAllowed", "Boolean", "True if remove operations are allowed.", "isRemoveAllowed"),
    ),
) + _catalog(
    BuiltinKind.METHOD,
    "Method",
    (
        ("contains", "(Coll[Byte], Coll[Byte]) => Boolean", "Check if tree contains a key with given proof.", "contains(${1:key}, ${2:proof})"),
        ("get", "(Coll[Byte], Coll[Byte]) => Option[Coll[Byte]]", "Get value for key with given proof.", "get(${1:key}, ${2:proof})"),
        ("getMany", "(Coll[Coll[Byte]], Coll[Byte]) => Coll[Option[Coll[Byte]]]", "Get multiple values with a single proof.", "getMany(${1:keys}, ${2:proof})"),
        ("insert", "(Coll[(Coll[Byte], Coll[Byte])], Coll[Byte]) => Option[AvlTree]", "Insert key-value pairs with proof.", "insert(${1:operations}, ${2:proof})"),
        ("update", "(Coll[(Coll[Byte], Coll[Byte])], Coll[Byte]) => Option[AvlTree]", "Update key-value pairs with proof.", "update(${1:operations}, ${2:proof})"),
        ("remove", "(Coll[Coll[Byte]], Coll[Byte]) => Option[AvlTree]", "Remove keys with proof.", "remove(${1:keys}, ${2:proof})"),
    ),
)

SIGMA_PROP_MEMBERS = _catalog(
    BuiltinKind.PROPERTY,
    "Property",
    (("propBytes", "Coll[Byte]", "Serialized bytes of the Sigma proposition.", "propBytes"),),
)

# Used when the receiver type of a member access cannot be determined.
COMMON_MEMBERS = OPTION_MEMBERS + COLLECTION_MEMBERS

TYPES = _catalog(
    BuiltinKind.TYPE,
    "Type",
    (
        ("Unit", "type", "Unit type with single value ()", "Unit"),
        ("Boolean", "type", "Boolean type (true or false)", "Boolean"),
        ("Byte", "type", "8-bit signed integer", "Byte"),
        ("Short", "type", "16-bit signed integer", "Short"),
        ("Int", "type", "32-bit signed integer", "Int"),
        ("Long", "type", "64-bit signed integer", "Long"),
        ("BigInt", "type", "Arbitrary precision signed integer", "BigInt"),
        ("UnsignedBigInt", "type", "Arbitrary precision unsigned integer (ErgoTree v3+)", "UnsignedBigInt"),
        ("GroupElement", "type", "Elliptic curve point (group element)", "GroupElement"),
        ("SigmaProp", "type", "Sigma proposition (proof specification)", "SigmaProp"),
        ("AvlTree", "type", "Authenticated dictionary using AVL tree", "AvlTree"),
        ("Box", "type", "UTXO box containing value and data", "Box"),
        ("Header", "type", "Block header type", "Header"),
        ("PreHeader", "type", "Pre-header information for block being mined", "PreHeader"),
        ("Context", "type", "Transaction and blockchain context", "Context"),
        ("String", "type", "Compile-time string literal", "String"),
        ("Coll", "type", "Collection type, e.g., Coll[Byte], Coll[Int]", "Coll[${1:Type}]"),
        ("Option", "type", "Optional value, may be Some(value) or None", "Option[${1:Type}]"),
    ),
)

ANNOTATIONS = _catalog(
    BuiltinKind.ANNOTATION,
    "Annotation",
    (
        (
            "@contract",
            "annotation",
            "Contract template annotation with named, typed and defaulted parameters.",
            "@contract def ${1:name}(${2:params}) = {\n\t${3:body}\n}",
        ),
    ),
)


# ----------------------------------------------------------------------
# Hover documentation for the most common names
# ----------------------------------------------------------------------

# name -> (signature, description, examples, related)
_HOVER_DETAILS: Dict[str, Tuple[str, str, Tuple[str, ...], Tuple[str, ...]]] = {
    "val": (
        "val name = value",
        "Declares an immutable value binding. Once assigned, the value cannot be changed.",
        ("val deadline = 100000", "val amount = SELF.value"),
        (),
    ),
    "@contract": (
        "/* docstring */ @contract def name(param: Type = default, ...) = { body }",
        "Contract template annotation. Defines a reusable contract with named parameters that can be "
        "instantiated with different values. Must be preceded by a /* */ comment block with @param tags "
        "for each parameter. Parameters must have type annotations and default values.",
        (
            "/* @param minHeight Minimum block height */ @contract def heightLock(minHeight: Int = 100) = { HEIGHT > minHeight }",
        ),
        ("def", "val"),
    ),
    "if": (
        "if (condition) trueCase else falseCase",
        "Conditional expression that evaluates to different values based on a boolean condition.",
        ("if (HEIGHT > 100) sigmaProp(true) else sigmaProp(false)", "val result = if (x > 0) x else -x"),
        (),
    ),
    "true": ("true: Boolean", "Boolean constant representing logical truth.", (), ()),
    "false": ("false: Boolean", "Boolean constant representing logical falsehood.", (), ()),
    "SELF": (
        "SELF: Box",
        "The box that is currently being spent by this script. Provides access to the box's value, "
        "registers, tokens, and other properties.",
        ("val deadline = SELF.R4[Int].get", "val boxValue = SELF.value", "val tokens = SELF.tokens"),
        ("Box", "value", "R4", "tokens"),
    ),
    "HEIGHT": (
        "HEIGHT: Int",
        "The current blockchain height. This is the height of the block being validated. Useful for "
        "implementing time-locked contracts and deadlines.",
        ("sigmaProp(HEIGHT > 100000)", "val deadline = SELF.R4[Int].get\nsigmaProp(HEIGHT > deadline)"),
        ("SELF", "sigmaProp"),
    ),
    "OUTPUTS": (
        "OUTPUTS: Coll[Box]",
        "Collection of output boxes in the current transaction. Access individual outputs using "
        "OUTPUTS(index). Used to enforce constraints on transaction outputs.",
        ("val firstOutput = OUTPUTS(0)", "sigmaProp(OUTPUTS(0).value >= 1000000)"),
        ("INPUTS", "Box", "SELF"),
    ),
    "INPUTS": (
        "INPUTS: Coll[Box]",
        "Collection of input boxes in the current transaction. Access individual inputs using INPUTS(index).",
        ("val firstInput = INPUTS(0)", "val totalInput = INPUTS.fold(0L, { (acc: Long, box: Box) => acc + box.value })"),
        ("OUTPUTS", "Box", "SELF"),
    ),
    "CONTEXT": (
        "CONTEXT: Context",
        "The transaction context containing blockchain state information and transaction details.",
        (),
        ("HEIGHT", "SELF"),
    ),
    "sigmaProp": (
        "def sigmaProp(condition: Boolean): SigmaProp",
        "Converts a boolean condition into a Sigma proposition. This is the fundamental building block "
        "for ErgoScript contracts.",
        ("sigmaProp(true)", "sigmaProp(HEIGHT > 100000)", "sigmaProp(OUTPUTS(0).value >= 1000000)"),
        ("proveDlog", "SigmaProp"),
    ),
    "proveDlog": (
        "def proveDlog(value: GroupElement): SigmaProp",
        "Creates a Sigma proposition that requires proof of knowledge of the discrete logarithm for the "
        "given group element. This is used for public key cryptography and signature verification.",
        ("proveDlog(publicKey)",),
        ("sigmaProp", "proveDHTuple", "GroupElement"),
    ),
    "proveDHTuple": (
        "def proveDHTuple(g: GroupElement, h: GroupElement, u: GroupElement, v: GroupElement): SigmaProp",
        "Creates a Sigma proposition requiring proof that the tuple (g, h, u, v) forms a valid "
        "Diffie-Hellman tuple, i.e., log_g(u) = log_h(v).",
        (),
        ("proveDlog", "GroupElement"),
    ),
    "atLeast": (
        "def atLeast(k: Int, propositions: Coll[SigmaProp]): SigmaProp",
        "Creates a threshold Sigma proposition that requires at least k of the n provided propositions "
        "to be satisfied. This enables k-of-n multi-signature schemes.",
        ("atLeast(2, Coll(proveDlog(pk1), proveDlog(pk2), proveDlog(pk3)))",),
        ("allOf", "anyOf", "SigmaProp"),
    ),
    "allOf": (
        "def allOf(conditions: Coll[Boolean]): Boolean",
        "Returns true if all boolean values in the collection are true. Short-circuits evaluation on "
        "the first false value.",
        ("allOf(Coll(HEIGHT > 100, OUTPUTS(0).value >= 1000))",),
        ("anyOf", "atLeast"),
    ),
    "anyOf": (
        "def anyOf(conditions: Coll[Boolean]): Boolean",
        "Returns true if any boolean value in the collection is true. Short-circuits evaluation on the "
        "first true value.",
        ("anyOf(Coll(HEIGHT > 100, OUTPUTS(0).value >= 1000))",),
        ("allOf", "atLeast"),
    ),
    "blake2b256": (
        "def blake2b256(input: Coll[Byte]): Coll[Byte]",
        "Computes the BLAKE2b-256 hash of the input bytes. Returns a 32-byte hash.",
        ("val hash = blake2b256(SELF.propositionBytes)",),
        ("sha256",),
    ),
    "sha256": (
        "def sha256(input: Coll[Byte]): Coll[Byte]",
        "Computes the SHA-256 hash of the input bytes. Returns a 32-byte hash.",
        (),
        ("blake2b256",),
    ),
    "value": (
        "value: Long",
        "The amount of ERG (in nanoERGs) contained in the box. 1 ERG = 1,000,000,000 nanoERGs.",
        ("val boxValue = SELF.value", "sigmaProp(OUTPUTS(0).value >= 1000000000L)"),
        ("Box", "SELF"),
    ),
    "tokens": (
        "tokens: Coll[(Coll[Byte], Long)]",
        "Collection of token (tokenId, amount) pairs stored in the box. TokenId is a 32-byte "
        "identifier, and amount is the quantity of that token.",
        ("val boxTokens = SELF.tokens", "val hasToken = SELF.tokens.exists { (t: (Coll[Byte], Long)) => t._1 == tokenId }"),
        ("Box", "SELF"),
    ),
    "R4": (
        "R4[T]: Option[T]",
        "Register R4 of the box. Boxes have registers R4-R9 available for storing arbitrary typed data. "
        "Access with a type parameter.",
        ("val deadline = SELF.R4[Int].get", "val data = SELF.R4[Coll[Byte]].getOrElse(Coll[Byte]())"),
        ("R5", "R6", "Box", "get", "getOrElse"),
    ),
    "get": (
        "def get: T",
        "Extracts the value from an Option[T]. Throws an exception if the Option is None. Use with "
        "caution - prefer getOrElse or isDefined for safety.",
        ("val deadline = SELF.R4[Int].get",),
        ("getOrElse", "isDefined", "Option"),
    ),
    "getOrElse": (
        "def getOrElse(default: T): T",
        "Returns the value if the Option is defined, otherwise returns the provided default value. "
        "This is the safe way to extract Option values.",
        ("val deadline = SELF.R4[Int].getOrElse(0)",),
        ("get", "isDefined", "Option"),
    ),
    "isDefined": (
        "def isDefined: Boolean",
        "Returns true if the Option contains a value (Some), false if it is empty (None).",
        (),
        ("get", "getOrElse", "Option"),
    ),
    "map": (
        "def map[R](f: T => R): Coll[R]",
        "Transforms each element of the collection using the provided function, returning a new "
        "collection with the transformed elements.",
        ("val values = INPUTS.map { (box: Box) => box.value }",),
        ("filter", "fold", "Coll"),
    ),
    "filter": (
        "def filter(p: T => Boolean): Coll[T]",
        "Returns a new collection containing only the elements that satisfy the predicate function.",
        ("val largeBoxes = OUTPUTS.filter { (box: Box) => box.value > 1000000 }",),
        ("map", "exists", "forall", "Coll"),
    ),
    "fold": (
        "def fold[R](initial: R, f: (R, T) => R): R",
        "Folds (reduces) the collection from left to right using the provided function and initial "
        "accumulator value.",
        ("val totalValue = INPUTS.fold(0L, { (acc: Long, box: Box) => acc + box.value })",),
        ("map", "filter", "Coll"),
    ),
    "SigmaProp": (
        "type SigmaProp",
        "Represents a Sigma protocol proposition - a specification of what cryptographic proofs are "
        "required. ErgoScript contracts must evaluate to a SigmaProp.",
        ("val prop: SigmaProp = sigmaProp(HEIGHT > 100)",),
        ("sigmaProp", "proveDlog", "atLeast"),
    ),
    "Box": (
        "type Box",
        "Represents a UTXO box in Ergo. Boxes contain value (ERG), tokens, and arbitrary data in "
        "registers. Every box has a guard script that must be satisfied to spend it.",
        ("val myBox: Box = SELF", "val output: Box = OUTPUTS(0)"),
        ("SELF", "OUTPUTS", "INPUTS", "value", "tokens"),
    ),
    "Coll": (
        "type Coll[T]",
        "Collection type representing an immutable sequence of elements of type T. Provides "
        "functional operations like map, filter, fold.",
        ("val boxes: Coll[Box] = OUTPUTS",),
        ("map", "filter", "fold", "exists"),
    ),
    "Option": (
        "type Option[T]",
        "Represents an optional value - either Some(value) or None. Used for box registers and values "
        "that may or may not be present.",
        ("val maybeDeadline: Option[Int] = SELF.R4[Int]",),
        ("get", "getOrElse", "isDefined", "R4"),
    ),
}


def _with_hover_details(entries: Tuple[Builtin, ...]) -> Tuple[Builtin, ...]:
    enriched = []
    for entry in entries:
        details = _HOVER_DETAILS.get(entry.name)
        if details is None:
            enriched.append(entry)
            continue
        signature, description, examples, related = details
        enriched.append(
            replace(entry, signature=signature, description=description, examples=examples, related=related)
        )
    return tuple(enriched)


# Lookup order decides which entry documents an overloaded name such as ``get``.
_HOVER_ORDER = (
    ANNOTATIONS,
    KEYWORDS,
    GLOBAL_CONSTANTS,
    FUNCTIONS,
    BOX_MEMBERS,
    CONTEXT_MEMBERS,
    OPTION_MEMBERS,
    COLLECTION_MEMBERS,
    NUMERIC_MEMBERS,
    AVL_TREE_MEMBERS,
    SIGMA_PROP_MEMBERS,
    TYPES,
)

_BUILTIN_INDEX: Dict[str, Builtin] = {}
for _catalog_entries in _HOVER_ORDER:
    for _entry in _with_hover_details(_catalog_entries):
        _BUILTIN_INDEX.setdefault(_entry.name, _entry)
del _catalog_entries, _entry


def lookup_builtin(name: str) -> Optional[Builtin]:
    """Return the documented built-in called ``name``, if any."""
    return _BUILTIN_INDEX.get(name)


def builtin_names() -> List[str]:
    return sorted(_BUILTIN_INDEX)


# ----------------------------------------------------------------------
# Type tables used by inference
# ----------------------------------------------------------------------

GLOBAL_TYPES: Dict[str, str] = {
    "HEIGHT": "Int",
    "SELF": "Box",
    "INPUTS": "Coll[Box]",
    "OUTPUTS": "Coll[Box]",
    "CONTEXT": "Context",
    "LastBlockUtxoRootHash": "AvlTree",
    "minerPubKey": "Coll[Byte]",
    "groupGenerator": "GroupElement",
}

BOX_PROPERTY_TYPES: Dict[str, str] = {
    "value": "Long",
    "propositionBytes": "Coll[Byte]",
    "bytes": "Coll[Byte]",
    "bytesWithoutRef": "Coll[Byte]",
    "id": "Coll[Byte]",
    "tokens": "Coll[(Coll[Byte], Long)]",
    "creationInfo": "(Int, Coll[Byte])",
}

CONTEXT_PROPERTY_TYPES: Dict[str, str] = {
    "dataInputs": "Coll[Box]",
    "headers": "Coll[Header]",
    "preHeader": "PreHeader",
    "minerPubKey": "Coll[Byte]",
    "LastBlockUtxoRootHash": "AvlTree",
    "HEIGHT": "Int",
    "SELF": "Box",
    "INPUTS": "Coll[Box]",
    "OUTPUTS": "Coll[Box]",
}

AVL_TREE_PROPERTY_TYPES: Dict[str, str] = {
    "digest": "Coll[Byte]",
    "enabledOperations": "Byte",
    "keyLength": "Int",
    "valueLengthOpt": "Option[Int]",
    "isInsertAllowed": "Boolean",
    "isUpdateAllowed": "Boolean",
    "isRemoveAllowed": "Boolean",
}

SIGMA_PROP_PROPERTY_TYPES: Dict[str, str] = {
    "propBytes": "Coll[Byte]",
    "isProven": "Boolean",
}

NUMERIC_CONVERSION_TYPES: Dict[str, str] = {
    "toByte": "Byte",
    "toShort": "Short",
    "toInt": "Int",
    "toLong": "Long",
    "toBigInt": "BigInt",
    "toBytes": "Coll[Byte]",
    "toBits": "Coll[Boolean]",
}

NUMERIC_TYPES = frozenset({"Byte", "Short", "Int", "Long", "BigInt", "UnsignedBigInt"})

FUNCTION_RETURN_TYPES: Dict[str, str] = {
    "sigmaProp": "SigmaProp",
    "proveDlog": "SigmaProp",
    "proveDHTuple": "SigmaProp",
    "atLeast": "SigmaProp",
    "allZK": "SigmaProp",
    "anyZK": "SigmaProp",
    "PK": "SigmaProp",
    "blake2b256": "Coll[Byte]",
    "sha256": "Coll[Byte]",
    "fromBase16": "Coll[Byte]",
    "fromBase58": "Coll[Byte]",
    "fromBase64": "Coll[Byte]",
    "longToByteArray": "Coll[Byte]",
    "serialize": "Coll[Byte]",
    "xor": "Coll[Byte]",
    "substConstants": "Coll[Byte]",
    "allOf": "Boolean",
    "anyOf": "Boolean",
    "xorOf": "Boolean",
    "byteArrayToBigInt": "BigInt",
    "bigInt": "BigInt",
    "unsignedBigInt": "UnsignedBigInt",
    "byteArrayToLong": "Long",
    "decodePoint": "GroupElement",
}

# Expected argument types per function, used to rank call-argument completions.
FUNCTION_ARGUMENT_TYPES: Dict[str, Tuple[str, ...]] = {
    "sigmaProp": ("Boolean",),
    "proveDlog": ("GroupElement",),
    "proveDHTuple": ("GroupElement", "GroupElement", "GroupElement", "GroupElement"),
    "atLeast": ("Int", "Coll[SigmaProp]"),
    "allOf": ("Coll[Boolean]",),
    "anyOf": ("Coll[Boolean]",),
    "xorOf": ("Coll[Boolean]",),
    "allZK": ("Coll[SigmaProp]",),
    "anyZK": ("Coll[SigmaProp]",),
    "blake2b256": ("Coll[Byte]",),
    "sha256": ("Coll[Byte]",),
    "byteArrayToBigInt": ("Coll[Byte]",),
    "byteArrayToLong": ("Coll[Byte]",),
    "longToByteArray": ("Long",),
    "decodePoint": ("Coll[Byte]",),
    "fromBase16": ("String",),
    "fromBase58": ("String",),
    "fromBase64": ("String",),
    "PK": ("String",),
    "getVar": ("Byte",),
    "xor": ("Coll[Byte]", "Coll[Byte]"),
}

REGISTER_NAMES = ("R4", "R5", "R6", "R7", "R8", "R9")


__all__ = [
    "BuiltinKind",
    "Builtin",
    "KEYWORDS",
    "GLOBAL_CONSTANTS",
    "FUNCTIONS",
    "BOX_MEMBERS",
    "CONTEXT_MEMBERS",
    "OPTION_MEMBERS",
    "COLLECTION_MEMBERS",
    "NUMERIC_MEMBERS",
    "AVL_TREE_MEMBERS",
    "SIGMA_PROP_MEMBERS",
    "COMMON_MEMBERS",
    "TYPES",
    "ANNOTATIONS",
    "lookup_builtin",
    "builtin_names",
    "GLOBAL_TYPES",
    "BOX_PROPERTY_TYPES",
    "CONTEXT_PROPERTY_TYPES",
    "AVL_TREE_PROPERTY_TYPES",
    "SIGMA_PROP_PROPERTY_TYPES",
    "NUMERIC_CONVERSION_TYPES",
    "NUMERIC_TYPES",
    "FUNCTION_RETURN_TYPES",
    "FUNCTION_ARGUMENT_TYPES",
    "REGISTER_NAMES",
]
