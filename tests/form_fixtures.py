"""Shared HTML fixtures for detection tests."""

BUSINESS_FORM = """
<html><head><title>Register</title></head>
<body>
<form id="reg">
  <div><label for="business_name">Business Name</label><input type="text" id="business_name" name="business_name"></div>
  <div><label for="ein">EIN</label><input type="text" id="ein" name="ein"></div>
  <div><label for="contact_email">Email Address</label><input type="email" id="contact_email" name="contact_email"></div>
  <div><label for="favorite_color">Favorite Color</label><input type="text" id="favorite_color" name="favorite_color"></div>
  <div><label for="comments">Comments</label><textarea id="comments" name="comments"></textarea></div>
  <div><label for="reference_code">Reference Code</label><input type="text" id="reference_code" name="reference_code"></div>
</form>
</body></html>
"""

FORM_WITHOUT_BUSINESS_NAME = """
<html><body>
<form>
  <div><label for="ein">EIN</label><input type="text" id="ein" name="ein"></div>
  <div><label for="contact_email">Email Address</label><input type="email" id="contact_email" name="contact_email"></div>
  <div><label for="favorite_color">Favorite Color</label><input type="text" id="favorite_color" name="favorite_color"></div>
  <div><label for="comments">Comments</label><textarea id="comments" name="comments"></textarea></div>
  <div><label for="reference_code">Reference Code</label><input type="text" id="reference_code" name="reference_code"></div>
</form>
</body></html>
"""

BUSINESS_NAME_ROW = (
    '<div><label for="business_name">Business Name</label>'
    '<input type="text" id="business_name" name="business_name"></div>'
)

ENTITY_TYPE_FIELDSET = """
<html><body>
<form>
  <fieldset>
    <legend>Entity Type</legend>
    <label><input type="radio" name="entity_type" value="llc"> LLC</label>
    <label><input type="radio" name="entity_type" value="corp"> Corporation</label>
    <label><input type="radio" name="entity_type" value="partnership"> Partnership</label>
    <label><input type="radio" name="entity_type" value="sole"> Sole Proprietorship</label>
    <label><input type="radio" name="entity_type" value="nonprofit"> Nonprofit</label>
  </fieldset>
</form>
</body></html>
"""

SECTIONED_FORM = """
<html><body>
<form>
  <h2>Business Information</h2>
  <div><label for="bn">Business Name</label><input id="bn" name="business_name"></div>
  <div><label for="dba">Trade Name</label><input id="dba" name="dba"></div>
  <h2>Contact Details</h2>
  <div><label for="em">Email</label><input id="em" type="email" name="email"></div>
  <div><label for="ph">Phone</label><input id="ph" type="tel" name="phone"></div>
</form>
</body></html>
"""

HIDDEN_ONLY = """
<html><body>
<form>
  <input type="hidden" name="session_id" value="abc">
  <input type="hidden" name="tracking" value="1">
  <input type="submit" value="Go">
</form>
</body></html>
"""

DC_CLEAN_HANDS = """
<html><body>
<form>
  <div><label for="ch">Clean Hands Certificate Number</label><input id="ch" name="ch_number"></div>
</form>
</body></html>
"""
